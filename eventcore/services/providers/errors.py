class ProviderError(Exception):
    """Explicit failure response from an email or SMS provider."""

    def __init__(
        self,
        message: str,
        provider: str,
        error_code: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.error_code = error_code
        self.status_code = status_code


class ProviderNotConfiguredError(Exception):
    """No credentials available for the provider."""

    def __init__(self, provider: str):
        super().__init__(f"{provider} is not configured")
        self.provider = provider

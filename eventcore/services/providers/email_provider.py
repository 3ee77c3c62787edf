"""
Transactional email provider client (Resend HTTP API).
"""

import httpx

from eventcore.infrastructure.observability.logging import get_logger, mask_email
from eventcore.services.providers.errors import ProviderError

logger = get_logger(__name__)

RESEND_API_BASE_URL = "https://api.resend.com"
REQUEST_TIMEOUT = 15  # seconds; the dispatcher applies its own tighter bound


class ResendEmailProvider:
    """send(to, subject, html) -> message id"""

    name = "resend"

    def __init__(
        self,
        api_key: str,
        sender: str,
        base_url: str = RESEND_API_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._sender = sender
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(REQUEST_TIMEOUT),
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def send(self, to: str, subject: str, html: str) -> str:
        payload = {"from": self._sender, "to": [to], "subject": subject, "html": html}
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = await self._client.post("/emails", json=payload, headers=headers)
        except httpx.RequestError as e:
            raise ProviderError(f"Email request failed: {e}", provider=self.name) from e

        data = self._parse(response)
        message_id = data.get("id")
        if not message_id:
            raise ProviderError(
                "Email provider returned no message id",
                provider=self.name,
                status_code=response.status_code,
            )

        logger.debug("Email accepted by provider", to=mask_email(to), message_id=message_id)
        return message_id

    def _parse(self, response: httpx.Response) -> dict:
        try:
            data = response.json() if response.text else {}
        except ValueError:
            data = {}

        if response.is_success:
            return data

        error_message = data.get("message") or response.text[:200] or "Unknown email provider error"
        raise ProviderError(
            error_message,
            provider=self.name,
            error_code=str(data.get("name") or response.status_code),
            status_code=response.status_code,
        )

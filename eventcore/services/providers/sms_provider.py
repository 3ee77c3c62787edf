"""
SMS gateway client (Twilio Messages API).

Numbers are forwarded exactly as given; callers validate E.164 first.
"""

import httpx

from eventcore.infrastructure.observability.logging import get_logger, mask_phone
from eventcore.services.providers.errors import ProviderError

logger = get_logger(__name__)

TWILIO_API_BASE_URL = "https://api.twilio.com/2010-04-01"
REQUEST_TIMEOUT = 15

_TWILIO_ERRORS = {
    21211: "Invalid phone number format",
    21214: "Phone number cannot receive SMS messages",
    21408: "SMS delivery to this region is not available",
    21610: "SMS delivery to this region is not available",
    21612: "Phone number appears invalid or is not a mobile number",
    21614: "Phone number appears invalid or is not a mobile number",
    30003: "Unable to deliver SMS to this number",
    30005: "Unable to deliver SMS to this number",
    30006: "Unable to deliver SMS to this number",
}


def describe_twilio_error(error_code: int | str | None, fallback: str) -> str:
    try:
        code = int(error_code) if error_code is not None else None
    except (TypeError, ValueError):
        code = None
    readable = _TWILIO_ERRORS.get(code)
    return f"{readable} ({code})" if readable else fallback


class TwilioSmsProvider:
    """send(to, body) -> message sid"""

    name = "twilio"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str | None = None,
        messaging_service_sid: str | None = None,
        base_url: str = TWILIO_API_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not (from_number or messaging_service_sid):
            raise ValueError("Twilio needs a messaging service SID or a sender number")
        self._account_sid = account_sid
        self._from_number = from_number
        self._messaging_service_sid = messaging_service_sid
        self._client = httpx.AsyncClient(
            base_url=base_url,
            auth=(account_sid, auth_token),
            timeout=httpx.Timeout(REQUEST_TIMEOUT),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def send(self, to: str, body: str) -> str:
        form = {"To": to, "Body": body}
        # Messaging Service takes precedence over a bare sender number
        if self._messaging_service_sid:
            form["MessagingServiceSid"] = self._messaging_service_sid
        else:
            form["From"] = self._from_number

        url = f"/Accounts/{self._account_sid}/Messages.json"
        try:
            response = await self._client.post(url, data=form)
        except httpx.RequestError as e:
            raise ProviderError(f"SMS request failed: {e}", provider=self.name) from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.is_success:
            error_code = data.get("code") or data.get("error_code")
            message = data.get("message") or data.get("error_message") or "Unknown error"
            logger.warning(
                "Twilio rejected SMS",
                to=mask_phone(to),
                error_code=error_code,
                status_code=response.status_code,
            )
            raise ProviderError(
                describe_twilio_error(error_code, message[:200]),
                provider=self.name,
                error_code=str(error_code) if error_code else None,
                status_code=response.status_code,
            )

        sid = data.get("sid")
        if not sid:
            raise ProviderError("SMS provider returned no message sid", provider=self.name)

        return sid

"""ZeptoMail implementation of EmailProvider.

Posts the rendered message to the ZeptoMail HTTP API through the shared
HttpClient. Delivery failures are logged and reported as ``False``.
"""

from typing import Optional

from config import EmailSettings
from infrastructure.http_client import HttpClient
from shared.logging import get_logger

log = get_logger(__name__)

_ZEPTO_API_URL = "https://api.zeptomail.eu/v1.1/email"
_AUTH_SCHEME = "Zoho-enczapikey "


class ZeptoMailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: HttpClient,
        api_url: str = _ZEPTO_API_URL,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._api_url = api_url

    def _auth_header(self) -> str:
        token = self._settings.zepto_api_token
        if not token.startswith(_AUTH_SCHEME):
            token = f"{_AUTH_SCHEME}{token}"
        return token

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
    ) -> bool:
        if not self._settings.zepto_api_token:
            log.error("email_send_failed", reason="token_not_configured", subject=subject)
            return False

        payload: dict = {
            "from": {
                "address": self._settings.zepto_from_email,
                "name": self._settings.zepto_from_name,
            },
            "to": [{"email_address": {"address": to_email, "name": to_email}}],
            "subject": subject,
            "htmlbody": html_body,
        }
        if text_body:
            payload["textbody"] = text_body

        headers = {
            "Authorization": self._auth_header(),
            "Content-Type": "application/json",
        }

        try:
            response = await self._http.post(self._api_url, json=payload, headers=headers)
        except Exception as e:
            log.error(
                "email_send_error",
                to_email=to_email,
                subject=subject,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if response.status_code in (200, 201, 202):
            log.info("email_sent_success", to_email=to_email, subject=subject)
            return True
        log.error(
            "email_send_failed",
            to_email=to_email,
            subject=subject,
            status_code=response.status_code,
            response=response.text[:200],
        )
        return False

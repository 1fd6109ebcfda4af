"""Outbound email transport (transactional email HTTP API)."""

from typing import Protocol

import httpx

from studyhub.core.config import Settings
from studyhub.core.logging import get_logger

log = get_logger(__name__)


class Mailer(Protocol):
    async def send(self, to_email: str, subject: str, html: str) -> None: ...

    async def aclose(self) -> None: ...


class HttpApiMailer:
    """Brevo-compatible ``POST /smtp/email`` transport. Raises on non-2xx."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        from_email: str,
        from_name: str,
        client: httpx.AsyncClient | None = None,
    ):
        self._api_url = api_url
        self._api_key = api_key
        self._sender = {"email": from_email, "name": from_name}
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(10.0))

    async def send(self, to_email: str, subject: str, html: str) -> None:
        resp = await self._client.post(
            self._api_url,
            headers={"api-key": self._api_key, "accept": "application/json"},
            json={
                "sender": self._sender,
                "to": [{"email": to_email}],
                "subject": subject,
                "htmlContent": html,
            },
        )
        resp.raise_for_status()
        log.info("email_sent", to=to_email, subject=subject, status_code=resp.status_code)

    async def aclose(self) -> None:
        await self._client.aclose()


class LogMailer:
    """Used when no mail API key is configured (local development)."""

    async def send(self, to_email: str, subject: str, html: str) -> None:
        log.info("email_skipped_no_transport", to=to_email, subject=subject, html_length=len(html))

    async def aclose(self) -> None:
        return None


def build_mailer(settings: Settings) -> Mailer:
    if not settings.mail_api_key:
        return LogMailer()
    return HttpApiMailer(
        api_url=settings.mail_api_url,
        api_key=settings.mail_api_key,
        from_email=settings.mail_from_email,
        from_name=settings.mail_from_name,
    )

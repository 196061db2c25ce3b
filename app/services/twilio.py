from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Union

import httpx

from app.core.config import Settings
from app.core.logging import logger
from app.core.phone import is_e164


@dataclass(frozen=True)
class SendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class MessagingGateway(Protocol):
    async def send(self, to: str, body: str) -> SendResult: ...


class TwilioClient:
    """
    Either construction works:
      - TwilioClient(settings)
      - TwilioClient(account_sid, auth_token, from_number)
    """

    def __init__(
        self,
        settings_or_account_sid: Union[Settings, str],
        auth_token: Optional[str] = None,
        from_number: Optional[str] = None,
        *,
        api_base: str = "https://api.twilio.com/2010-04-01",
        timeout_seconds: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if isinstance(settings_or_account_sid, Settings):
            settings = settings_or_account_sid
            if not settings.twilio_configured:
                raise TypeError("TwilioClient(settings) requires TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_PHONE_NUMBER")
            self.account_sid = settings.twilio_account_sid
            self.auth_token = settings.twilio_auth_token
            self.from_number = settings.twilio_phone_number
            api_base = settings.twilio_api_base
            timeout_seconds = settings.sms_timeout_seconds
        else:
            if not auth_token or not from_number:
                raise TypeError("TwilioClient(account_sid, auth_token, from_number) requires auth_token and from_number")
            self.account_sid = settings_or_account_sid
            self.auth_token = auth_token
            self.from_number = from_number

        self.api_base = api_base.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def messages_url(self) -> str:
        return f"{self.api_base}/Accounts/{self.account_sid}/Messages.json"

    async def _post(self, payload: Dict[str, str]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
            return await client.post(
                self.messages_url,
                auth=(self.account_sid, self.auth_token),
                data=payload,
                headers={"Accept": "application/json"},
            )

    async def send(self, to: str, body: str) -> SendResult:
        if not to or not body:
            return SendResult(success=False, error="Missing required fields: to, message")
        if not is_e164(to):
            return SendResult(
                success=False,
                error="Invalid phone number format. Must be in E.164 format (e.g., +12345678901)",
            )

        try:
            resp = await self._post({"To": to, "From": self.from_number, "Body": body})
        except httpx.HTTPError as exc:
            logger.error("Twilio request failed url=%s error=%s", self.messages_url, exc)
            return SendResult(success=False, error=str(exc) or exc.__class__.__name__)

        data = _json_or_empty(resp)
        if resp.status_code >= 400:
            logger.error(
                "Twilio API error status=%s url=%s response=%s",
                resp.status_code,
                self.messages_url,
                resp.text[:3000],
            )
            message = data.get("message") or resp.reason_phrase or f"HTTP {resp.status_code}"
            return SendResult(success=False, error=f"Twilio API error: {message}")

        message_id = data.get("sid")
        logger.info("SMS sent sid=%s status=%s", message_id, data.get("status"))
        return SendResult(success=True, message_id=str(message_id) if message_id else None)


def _json_or_empty(resp: httpx.Response) -> Dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def build_gateway(settings: Settings) -> Optional[TwilioClient]:
    if not settings.twilio_configured:
        logger.info("Messaging gateway disabled: Twilio credentials not configured")
        return None
    return TwilioClient(settings)

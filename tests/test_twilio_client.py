import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from app.core.config import Settings
from app.services.twilio import TwilioClient, build_gateway


def _client(handler) -> TwilioClient:
    return TwilioClient("AC123", "secret", "+15550000000", transport=httpx.MockTransport(handler))


def test_successful_send_posts_form_and_returns_sid() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(201, json={"sid": "SM42", "status": "queued"})

    result = asyncio.run(_client(handler).send("+15551234567", "hello"))

    assert result.success is True
    assert result.message_id == "SM42"
    assert seen["url"] == "https://api.twilio.com/2010-04-01/Accounts/AC123/Messages.json"
    assert seen["auth"].startswith("Basic ")
    assert seen["form"] == {"To": ["+15551234567"], "From": ["+15550000000"], "Body": ["hello"]}


def test_api_error_message_is_surfaced() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"code": 21211, "message": "Invalid 'To' Phone Number"})

    result = asyncio.run(_client(handler).send("+15551234567", "hello"))

    assert result.success is False
    assert result.error == "Twilio API error: Invalid 'To' Phone Number"


def test_transport_failure_becomes_failed_result() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = asyncio.run(_client(handler).send("+15551234567", "hello"))

    assert result.success is False
    assert "connection refused" in result.error


@pytest.mark.parametrize(
    "to, body, error",
    [
        ("", "hello", "Missing required fields: to, message"),
        ("+15551234567", "", "Missing required fields: to, message"),
        ("5551234567", "hello", "Invalid phone number format. Must be in E.164 format (e.g., +12345678901)"),
    ],
)
def test_bad_input_never_reaches_the_network(to: str, body: str, error: str) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(201, json={"sid": "SM1"})

    result = asyncio.run(_client(handler).send(to, body))

    assert result.success is False
    assert result.error == error
    assert calls == []


def test_gateway_requires_all_credentials() -> None:
    assert build_gateway(Settings(database_url="sqlite://", twilio_account_sid="AC1")) is None
    gateway = build_gateway(
        Settings(
            database_url="sqlite://",
            twilio_account_sid="AC1",
            twilio_auth_token="token",
            twilio_phone_number="+15550000000",
        )
    )
    assert isinstance(gateway, TwilioClient)
    assert gateway.messages_url.endswith("/Accounts/AC1/Messages.json")

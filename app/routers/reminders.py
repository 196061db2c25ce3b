from __future__ import annotations

from typing import Callable, Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.core.config import Settings
from app.core.errors import ConfigurationError
from app.core.logging import set_trace_id
from app.services.reminder_dispatcher import run_reminder_dispatch
from app.services.repositories import DataRepo
from app.services.twilio import MessagingGateway

_STATUS_BY_ERROR_KIND = {"not_configured": 400, "upstream": 500}


class SendSmsRequest(BaseModel):
    to: str = Field(min_length=1, max_length=16)
    message: str = Field(min_length=1, max_length=1600)


def build_reminders_router(
    repo: DataRepo,
    gateway_provider: Callable[[], Optional[MessagingGateway]],
    settings: Settings,
) -> APIRouter:
    router = APIRouter(tags=["reminders"])

    @router.post("/reminders/process")
    async def process_reminders():
        report = await run_reminder_dispatch(repo, gateway_provider(), settings)
        status_code = 200 if report.success else _STATUS_BY_ERROR_KIND.get(report.error_kind or "", 500)
        return JSONResponse(report.to_dict(), status_code=status_code)

    @router.post("/sms/send")
    async def send_sms(payload: SendSmsRequest):
        set_trace_id()
        gateway = gateway_provider()
        if gateway is None:
            raise ConfigurationError("Twilio credentials not configured")
        result = await gateway.send(payload.to, payload.message)
        if not result.success:
            return JSONResponse({"success": False, "error": result.error}, status_code=400)
        return {"success": True, "messageId": result.message_id}

    return router

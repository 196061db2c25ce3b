from __future__ import annotations

from typing import Callable, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from app.core.phone import format_phone_number
from app.services.profile import ProfileService
from app.services.twilio import MessagingGateway


class UpdatePhoneRequest(BaseModel):
    country_code: str = Field(default="+1", pattern=r"^\+?\d{1,4}$")
    phone_number: str = Field(max_length=32)


class NotificationsRequest(BaseModel):
    enabled: bool


def _profile_payload(service: ProfileService) -> dict:
    profile = service.get_profile()
    data = profile.to_dict()
    data["display"] = format_phone_number(profile.country_code, profile.phone_number) if profile.phone_number else None
    return data


def build_settings_router(
    service: ProfileService,
    gateway_provider: Callable[[], Optional[MessagingGateway]],
) -> APIRouter:
    router = APIRouter(prefix="/settings", tags=["settings"])

    @router.get("/profile")
    async def get_profile():
        return _profile_payload(service)

    @router.put("/phone")
    async def update_phone(payload: UpdatePhoneRequest):
        service.update_phone(payload.country_code, payload.phone_number)
        return _profile_payload(service)

    @router.delete("/phone")
    async def clear_phone():
        service.clear_phone()
        return _profile_payload(service)

    @router.put("/notifications")
    async def set_notifications(payload: NotificationsRequest):
        service.set_notifications(payload.enabled)
        return _profile_payload(service)

    @router.post("/phone/verify")
    async def verify_phone():
        result = await service.verify_phone(gateway_provider())
        body = _profile_payload(service)
        body["success"] = result.success
        if result.error:
            body["error"] = result.error
        return body

    return router

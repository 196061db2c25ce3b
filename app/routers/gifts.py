from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Query, Response
from pydantic import BaseModel, Field

from app.domain.models import EventType
from app.services.gifts import GiftService


class CreateGiftRequest(BaseModel):
    gift_name: str = Field(min_length=1, max_length=128)
    recipient_name: str = Field(min_length=1, max_length=128)
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    event_type: EventType = EventType.OTHER
    event_date: date
    purchased: bool = False
    notes: Optional[str] = Field(default=None, max_length=2000)


class UpdateGiftRequest(BaseModel):
    gift_name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    recipient_name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    amount: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    event_type: Optional[EventType] = None
    event_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=2000)


def build_gifts_router(service: GiftService) -> APIRouter:
    router = APIRouter(prefix="/gifts", tags=["gifts"])

    @router.get("")
    async def list_gifts(
        event_type: Optional[EventType] = Query(default=None),
        purchased: Optional[bool] = Query(default=None),
    ):
        gifts = service.list_gifts(event_type=event_type.value if event_type else None, purchased=purchased)
        return {"gifts": [gift.to_dict() for gift in gifts]}

    @router.get("/upcoming")
    async def upcoming_gifts():
        return {"gifts": [gift.to_dict() for gift in service.upcoming()]}

    @router.get("/budget")
    async def gift_budget():
        return service.budget().to_dict()

    @router.post("", status_code=201)
    async def create_gift(payload: CreateGiftRequest):
        return service.create_gift(payload.model_dump()).to_dict()

    @router.get("/{gift_id}")
    async def get_gift(gift_id: str):
        return service.get_gift(gift_id).to_dict()

    @router.patch("/{gift_id}")
    async def update_gift(gift_id: str, payload: UpdateGiftRequest):
        # notes may be cleared explicitly with null
        updates = payload.model_dump(exclude_unset=True)
        updates = {key: value for key, value in updates.items() if value is not None or key == "notes"}
        return service.update_gift(gift_id, updates).to_dict()

    @router.delete("/{gift_id}", status_code=204)
    async def delete_gift(gift_id: str):
        service.delete_gift(gift_id)
        return Response(status_code=204)

    @router.post("/{gift_id}/purchased")
    async def mark_purchased(gift_id: str):
        return service.mark_purchased(gift_id).to_dict()

    @router.post("/{gift_id}/unpurchased")
    async def mark_unpurchased(gift_id: str):
        return service.mark_unpurchased(gift_id).to_dict()

    return router

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Query, Response
from pydantic import BaseModel, Field

from app.domain.models import BillCategory
from app.services.bills import BillService


class CreateBillRequest(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    due_date: date
    category: BillCategory = BillCategory.OTHER
    sms_enabled: bool = False


class UpdateBillRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    amount: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    due_date: Optional[date] = None
    category: Optional[BillCategory] = None
    sms_enabled: Optional[bool] = None


def build_bills_router(service: BillService) -> APIRouter:
    router = APIRouter(prefix="/bills", tags=["bills"])

    @router.get("")
    async def list_bills(
        category: Optional[BillCategory] = Query(default=None),
        status: Optional[str] = Query(default=None),
    ):
        bills = service.list_bills(category=category.value if category else None, status=status)
        return {"bills": [bill.to_dict() for bill in bills]}

    @router.get("/summary")
    async def bills_summary():
        return service.summary().to_dict()

    @router.post("", status_code=201)
    async def create_bill(payload: CreateBillRequest):
        return service.create_bill(payload.model_dump()).to_dict()

    @router.get("/{bill_id}")
    async def get_bill(bill_id: str):
        return service.get_bill(bill_id).to_dict()

    @router.patch("/{bill_id}")
    async def update_bill(bill_id: str, payload: UpdateBillRequest):
        updates = payload.model_dump(exclude_unset=True, exclude_none=True)
        return service.update_bill(bill_id, updates).to_dict()

    @router.delete("/{bill_id}", status_code=204)
    async def delete_bill(bill_id: str):
        service.delete_bill(bill_id)
        return Response(status_code=204)

    @router.post("/{bill_id}/paid")
    async def mark_paid(bill_id: str):
        return service.mark_paid(bill_id).to_dict()

    @router.post("/{bill_id}/unpaid")
    async def mark_unpaid(bill_id: str):
        return service.mark_unpaid(bill_id).to_dict()

    return router

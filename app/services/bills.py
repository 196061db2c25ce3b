from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from app.core.errors import RecordNotFoundError, ValidationError
from app.domain.budget import BillSummary, summarize_bills
from app.domain.models import Bill, BillCategory, BillStatus, as_amount, as_date
from app.domain.status import project_bills, with_status
from app.services.repositories import DataRepo, store_errors

EDITABLE_FIELDS = ("name", "amount", "due_date", "category", "sms_enabled")


def _validate_bill_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    clean: Dict[str, Any] = {}
    if "name" in data:
        name = str(data["name"] or "").strip()
        if not name:
            raise ValidationError("Bill name is required", field="name")
        clean["name"] = name
    if "amount" in data:
        amount = as_amount(data["amount"])
        if amount <= Decimal("0"):
            raise ValidationError("Amount must be greater than 0", field="amount")
        clean["amount"] = amount
    if "due_date" in data:
        due_date = as_date(data["due_date"])
        if due_date is None:
            raise ValidationError("Due date is required", field="due_date")
        clean["due_date"] = due_date
    if "category" in data:
        try:
            clean["category"] = BillCategory(data["category"] or BillCategory.OTHER)
        except ValueError:
            raise ValidationError(f"Unknown category: {data['category']}", field="category") from None
    if "sms_enabled" in data:
        clean["sms_enabled"] = bool(data["sms_enabled"])
    return clean


@dataclass
class BillService:
    """Bill CRUD scoped to one owner; every read goes through the status projection."""

    repo: DataRepo
    owner_id: str
    today: Callable[[], date]

    def _project(self, row: Optional[Dict[str, Any]], bill_id: str) -> Bill:
        if not row:
            raise RecordNotFoundError("Bill", bill_id)
        return with_status(Bill.from_row(row), self.today())

    def create_bill(self, data: Dict[str, Any]) -> Bill:
        for required in ("name", "amount", "due_date"):
            if data.get(required) in (None, ""):
                raise ValidationError(f"{required} is required", field=required)
        clean = _validate_bill_fields({**data, "category": data.get("category") or BillCategory.OTHER})
        clean.setdefault("sms_enabled", False)
        with store_errors("create bill"):
            self.repo.ensure_user(self.owner_id)
            row = self.repo.insert_bill(self.owner_id, clean)
        return self._project(row, str(row.get("id")))

    def list_bills(self, category: Optional[str] = None, status: Optional[str] = None) -> List[Bill]:
        wanted = None
        if status:
            try:
                wanted = BillStatus(status)
            except ValueError:
                raise ValidationError(f"Unknown status: {status}", field="status") from None
        with store_errors("fetch bills"):
            rows = self.repo.list_bills(self.owner_id, category)
        bills = project_bills((Bill.from_row(row) for row in rows), self.today())
        if wanted is not None:
            bills = [bill for bill in bills if bill.status is wanted]
        return bills

    def get_bill(self, bill_id: str) -> Bill:
        with store_errors("fetch bill"):
            row = self.repo.get_bill(self.owner_id, bill_id)
        return self._project(row, bill_id)

    def update_bill(self, bill_id: str, data: Dict[str, Any]) -> Bill:
        updates = _validate_bill_fields({key: value for key, value in data.items() if key in EDITABLE_FIELDS})
        with store_errors("update bill"):
            row = self.repo.update_bill(self.owner_id, bill_id, updates)
        return self._project(row, bill_id)

    def delete_bill(self, bill_id: str) -> None:
        with store_errors("delete bill"):
            deleted = self.repo.delete_bill(self.owner_id, bill_id)
        if not deleted:
            raise RecordNotFoundError("Bill", bill_id)

    def mark_paid(self, bill_id: str) -> Bill:
        with store_errors("update bill"):
            row = self.repo.update_bill(self.owner_id, bill_id, {"payment_date": self.today()})
        return self._project(row, bill_id)

    def mark_unpaid(self, bill_id: str) -> Bill:
        with store_errors("update bill"):
            row = self.repo.update_bill(self.owner_id, bill_id, {"payment_date": None})
        return self._project(row, bill_id)

    def summary(self) -> BillSummary:
        return summarize_bills(self.list_bills(), self.today())

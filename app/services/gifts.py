from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from app.core.errors import RecordNotFoundError, ValidationError
from app.domain.budget import GiftBudget, summarize_gifts
from app.domain.models import EventType, Gift, as_amount, as_date
from app.services.repositories import DataRepo, store_errors

EDITABLE_FIELDS = ("gift_name", "recipient_name", "amount", "event_type", "event_date", "notes")


def _validate_gift_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    clean: Dict[str, Any] = {}
    for key in ("gift_name", "recipient_name"):
        if key in data:
            value = str(data[key] or "").strip()
            if not value:
                raise ValidationError(f"{key} is required", field=key)
            clean[key] = value
    if "amount" in data:
        amount = as_amount(data["amount"])
        if amount <= Decimal("0"):
            raise ValidationError("Amount must be greater than 0", field="amount")
        clean["amount"] = amount
    if "event_type" in data:
        try:
            clean["event_type"] = EventType(data["event_type"] or EventType.OTHER)
        except ValueError:
            raise ValidationError(f"Unknown event type: {data['event_type']}", field="event_type") from None
    if "event_date" in data:
        event_date = as_date(data["event_date"])
        if event_date is None:
            raise ValidationError("Event date is required", field="event_date")
        clean["event_date"] = event_date
    if "notes" in data:
        notes = data["notes"]
        clean["notes"] = (str(notes).strip() or None) if notes is not None else None
    return clean


@dataclass
class GiftService:
    repo: DataRepo
    owner_id: str
    today: Callable[[], date]

    @staticmethod
    def _gift(row: Optional[Dict[str, Any]], gift_id: str) -> Gift:
        if not row:
            raise RecordNotFoundError("Gift", gift_id)
        return Gift.from_row(row)

    def create_gift(self, data: Dict[str, Any]) -> Gift:
        for required in ("gift_name", "recipient_name", "amount", "event_date"):
            if data.get(required) in (None, ""):
                raise ValidationError(f"{required} is required", field=required)
        clean = _validate_gift_fields({**data, "event_type": data.get("event_type") or EventType.OTHER})
        purchased = bool(data.get("purchased", False))
        clean["purchased"] = purchased
        clean["purchase_date"] = self.today() if purchased else None
        with store_errors("create gift"):
            self.repo.ensure_user(self.owner_id)
            row = self.repo.insert_gift(self.owner_id, clean)
        return self._gift(row, str(row.get("id")))

    def list_gifts(self, event_type: Optional[str] = None, purchased: Optional[bool] = None) -> List[Gift]:
        with store_errors("fetch gifts"):
            rows = self.repo.list_gifts(self.owner_id, event_type, purchased)
        return [Gift.from_row(row) for row in rows]

    def get_gift(self, gift_id: str) -> Gift:
        with store_errors("fetch gift"):
            row = self.repo.get_gift(self.owner_id, gift_id)
        return self._gift(row, gift_id)

    def update_gift(self, gift_id: str, data: Dict[str, Any]) -> Gift:
        updates = _validate_gift_fields({key: value for key, value in data.items() if key in EDITABLE_FIELDS})
        with store_errors("update gift"):
            row = self.repo.update_gift(self.owner_id, gift_id, updates)
        return self._gift(row, gift_id)

    def delete_gift(self, gift_id: str) -> None:
        with store_errors("delete gift"):
            deleted = self.repo.delete_gift(self.owner_id, gift_id)
        if not deleted:
            raise RecordNotFoundError("Gift", gift_id)

    def mark_purchased(self, gift_id: str) -> Gift:
        with store_errors("update gift"):
            row = self.repo.update_gift(self.owner_id, gift_id, {"purchased": True, "purchase_date": self.today()})
        return self._gift(row, gift_id)

    def mark_unpurchased(self, gift_id: str) -> Gift:
        with store_errors("update gift"):
            row = self.repo.update_gift(self.owner_id, gift_id, {"purchased": False, "purchase_date": None})
        return self._gift(row, gift_id)

    def upcoming(self) -> List[Gift]:
        today = self.today()
        return [gift for gift in self.list_gifts(purchased=False) if gift.event_date >= today]

    def budget(self) -> GiftBudget:
        return summarize_gifts(self.list_gifts(), self.today())

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional

from app.core.errors import CorruptRecordError

CENTS = Decimal("0.01")


class BillStatus(str, Enum):
    PAID = "paid"
    OVERDUE = "overdue"
    DUE_SOON = "due_soon"
    UPCOMING = "upcoming"


class BillCategory(str, Enum):
    UTILITIES = "utilities"
    RENT_MORTGAGE = "rent_mortgage"
    INSURANCE = "insurance"
    SUBSCRIPTIONS = "subscriptions"
    CREDIT_CARDS = "credit_cards"
    LOANS = "loans"
    OTHER = "other"


class EventType(str, Enum):
    BIRTHDAY = "birthday"
    CHRISTMAS = "christmas"
    ANNIVERSARY = "anniversary"
    GRADUATION = "graduation"
    WEDDING = "wedding"
    BABY_SHOWER = "baby_shower"
    OTHER = "other"


def as_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def as_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        # Timestamps are written in UTC; SQLite hands them back naive.
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def as_amount(value: Any) -> Decimal:
    try:
        return Decimal(str(value)).quantize(CENTS)
    except (InvalidOperation, ValueError):
        return Decimal("0.00")


def _column_amount(row: Dict[str, Any], kind: str) -> Decimal:
    raw = row.get("amount")
    try:
        return Decimal(str(raw)).quantize(CENTS)
    except (InvalidOperation, ValueError):
        raise CorruptRecordError(f"{kind} {row.get('id')}: invalid amount {raw!r}") from None


def _column_date(row: Dict[str, Any], name: str, kind: str, required: bool = False) -> Optional[date]:
    raw = row.get(name)
    value = as_date(raw)
    if value is None and (required or raw not in (None, "")):
        raise CorruptRecordError(f"{kind} {row.get('id')}: invalid {name} {raw!r}")
    return value


def _column_datetime(row: Dict[str, Any], name: str, kind: str) -> Optional[datetime]:
    raw = row.get(name)
    value = as_datetime(raw)
    if value is None and raw not in (None, ""):
        raise CorruptRecordError(f"{kind} {row.get('id')}: invalid {name} {raw!r}")
    return value


@dataclass(frozen=True)
class Bill:
    id: str
    user_id: str
    name: str
    amount: Decimal
    due_date: date
    category: BillCategory = BillCategory.OTHER
    sms_enabled: bool = False
    payment_date: Optional[date] = None
    last_reminder_sent: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Filled in by the read projection only; never persisted.
    status: Optional[BillStatus] = None

    @property
    def is_paid(self) -> bool:
        return self.payment_date is not None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Bill":
        category = str(row.get("category") or BillCategory.OTHER.value)
        return cls(
            id=str(row["id"]),
            user_id=str(row.get("user_id") or ""),
            name=str(row.get("name") or ""),
            amount=_column_amount(row, "Bill"),
            due_date=_column_date(row, "due_date", "Bill", required=True),
            category=BillCategory(category) if category in BillCategory._value2member_map_ else BillCategory.OTHER,
            sms_enabled=bool(row.get("sms_enabled")),
            payment_date=_column_date(row, "payment_date", "Bill"),
            last_reminder_sent=_column_datetime(row, "last_reminder_sent", "Bill"),
            created_at=_column_datetime(row, "created_at", "Bill"),
            updated_at=_column_datetime(row, "updated_at", "Bill"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "amount": float(self.amount),
            "due_date": self.due_date.isoformat(),
            "category": self.category.value,
            "status": self.status.value if self.status else None,
            "sms_enabled": self.sms_enabled,
            "payment_date": self.payment_date.isoformat() if self.payment_date else None,
            "last_reminder_sent": self.last_reminder_sent.isoformat() if self.last_reminder_sent else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class Gift:
    id: str
    user_id: str
    gift_name: str
    recipient_name: str
    amount: Decimal
    event_type: EventType
    event_date: date
    purchased: bool = False
    purchase_date: Optional[date] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Gift":
        event_type = str(row.get("event_type") or EventType.OTHER.value)
        return cls(
            id=str(row["id"]),
            user_id=str(row.get("user_id") or ""),
            gift_name=str(row.get("gift_name") or ""),
            recipient_name=str(row.get("recipient_name") or ""),
            amount=_column_amount(row, "Gift"),
            event_type=EventType(event_type) if event_type in EventType._value2member_map_ else EventType.OTHER,
            event_date=_column_date(row, "event_date", "Gift", required=True),
            purchased=bool(row.get("purchased")),
            purchase_date=_column_date(row, "purchase_date", "Gift"),
            notes=row.get("notes"),
            created_at=_column_datetime(row, "created_at", "Gift"),
            updated_at=_column_datetime(row, "updated_at", "Gift"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "gift_name": self.gift_name,
            "recipient_name": self.recipient_name,
            "amount": float(self.amount),
            "event_type": self.event_type.value,
            "event_date": self.event_date.isoformat(),
            "purchased": self.purchased,
            "purchase_date": self.purchase_date.isoformat() if self.purchase_date else None,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class UserProfile:
    phone_number: str = ""
    country_code: str = "+1"
    phone_verified: bool = False
    notifications_enabled: bool = True

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "UserProfile":
        return cls(
            phone_number=str(row.get("phone_number") or ""),
            country_code=str(row.get("country_code") or "+1"),
            phone_verified=bool(row.get("phone_verified")),
            notifications_enabled=bool(row.get("notifications_enabled", True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phone_number": self.phone_number,
            "country_code": self.country_code,
            "phone_verified": self.phone_verified,
            "notifications_enabled": self.notifications_enabled,
        }

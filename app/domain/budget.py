from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Tuple

from app.domain.models import Bill, BillStatus, Gift
from app.domain.status import calculate_status

UPCOMING_GIFT_WINDOW_DAYS = 30


@dataclass(frozen=True)
class GiftBudget:
    total: Decimal
    purchased: Decimal
    remaining: Decimal
    upcoming_by_month: List[Tuple[str, List[Gift]]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": float(self.total),
            "purchased": float(self.purchased),
            "remaining": float(self.remaining),
            "upcoming_by_month": [
                {"month": label, "gifts": [gift.to_dict() for gift in gifts]}
                for label, gifts in self.upcoming_by_month
            ],
        }


@dataclass(frozen=True)
class BillSummary:
    total: Decimal
    paid: Decimal
    remaining: Decimal
    progress_percentage: float
    status_counts: Dict[str, int]
    total_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": float(self.total),
            "paid": float(self.paid),
            "remaining": float(self.remaining),
            "progress_percentage": self.progress_percentage,
            "status_counts": dict(self.status_counts),
            "total_count": self.total_count,
        }


def upcoming_gifts(gifts: Iterable[Gift], today: date, window_days: int = UPCOMING_GIFT_WINDOW_DAYS) -> List[Gift]:
    selected = [
        gift
        for gift in gifts
        if not gift.purchased and 0 <= (gift.event_date - today).days <= window_days
    ]
    return sorted(selected, key=lambda gift: gift.event_date)


def group_by_month(gifts: Iterable[Gift]) -> List[Tuple[str, List[Gift]]]:
    groups: Dict[str, List[Gift]] = {}
    for gift in gifts:
        groups.setdefault(gift.event_date.strftime("%B %Y"), []).append(gift)
    return list(groups.items())


def summarize_gifts(gifts: Iterable[Gift], today: date) -> GiftBudget:
    data = list(gifts)
    total = sum((gift.amount for gift in data), Decimal("0"))
    purchased = sum((gift.amount for gift in data if gift.purchased), Decimal("0"))
    return GiftBudget(
        total=total,
        purchased=purchased,
        remaining=total - purchased,
        upcoming_by_month=group_by_month(upcoming_gifts(data, today)),
    )


def summarize_bills(bills: Iterable[Bill], today: date) -> BillSummary:
    data = list(bills)
    counts = {status.value: 0 for status in BillStatus}
    total = Decimal("0")
    paid = Decimal("0")
    for bill in data:
        total += bill.amount
        if bill.is_paid:
            paid += bill.amount
        counts[calculate_status(bill, today).value] += 1
    progress = float(paid / total * 100) if total > 0 else 0.0
    return BillSummary(
        total=total,
        paid=paid,
        remaining=total - paid,
        progress_percentage=round(progress, 2),
        status_counts=counts,
        total_count=len(data),
    )

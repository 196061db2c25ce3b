from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Iterable, List

from app.domain.models import Bill, BillStatus

DUE_SOON_DAYS = 7

_STATUS_LABELS = {
    BillStatus.PAID: "Paid",
    BillStatus.DUE_SOON: "Due Soon",
    BillStatus.OVERDUE: "Overdue",
    BillStatus.UPCOMING: "Upcoming",
}


def days_until_due(due_date: date, today: date) -> int:
    """Whole calendar days from ``today`` to ``due_date``; negative when past."""
    return (due_date - today).days


def calculate_status(bill: Bill, today: date) -> BillStatus:
    if bill.payment_date is not None:
        return BillStatus.PAID
    days = days_until_due(bill.due_date, today)
    if days < 0:
        return BillStatus.OVERDUE
    if days <= DUE_SOON_DAYS:
        return BillStatus.DUE_SOON
    return BillStatus.UPCOMING


def is_overdue(bill: Bill, today: date) -> bool:
    return calculate_status(bill, today) is BillStatus.OVERDUE


def is_due_soon(bill: Bill, today: date) -> bool:
    return calculate_status(bill, today) is BillStatus.DUE_SOON


def status_label(status: BillStatus) -> str:
    return _STATUS_LABELS[status]


def with_status(bill: Bill, today: date) -> Bill:
    return replace(bill, status=calculate_status(bill, today))


def project_bills(bills: Iterable[Bill], today: date) -> List[Bill]:
    return [with_status(bill, today) for bill in bills]

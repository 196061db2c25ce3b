from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from enum import Enum
from typing import Optional

from app.domain.models import Bill
from app.domain.status import days_until_due


class ReminderTemplate(str, Enum):
    THREE_DAY = "three_day"
    ONE_DAY = "one_day"
    SAME_DAY = "same_day"


_SCHEDULE = {
    3: ReminderTemplate.THREE_DAY,
    1: ReminderTemplate.ONE_DAY,
    0: ReminderTemplate.SAME_DAY,
}

SMS_SIGNATURE = "TxT MONEY"


@dataclass(frozen=True)
class ReminderDecision:
    send: bool
    template: Optional[ReminderTemplate]
    days_until_due: int


def _sent_on(sent_at: Optional[datetime], today: date, tz: Optional[tzinfo]) -> bool:
    if sent_at is None:
        return False
    local = sent_at.astimezone(tz) if tz is not None and sent_at.tzinfo is not None else sent_at
    return local.date() == today


def reminder_for(bill: Bill, today: date, tz: Optional[tzinfo] = None) -> ReminderDecision:
    """Decide whether ``bill`` gets a reminder on ``today``.

    Reminders go out on a sparse schedule: three days before the due date, the
    day before, and the due date itself. A bill whose ``last_reminder_sent``
    falls on ``today`` (read in ``tz``) is skipped, so repeated runs on the same
    day send at most once.
    """
    days = days_until_due(bill.due_date, today)
    if not bill.sms_enabled or bill.is_paid:
        return ReminderDecision(send=False, template=None, days_until_due=days)
    if _sent_on(bill.last_reminder_sent, today, tz):
        return ReminderDecision(send=False, template=None, days_until_due=days)
    template = _SCHEDULE.get(days)
    return ReminderDecision(send=template is not None, template=template, days_until_due=days)


def render_message(bill: Bill, template: ReminderTemplate) -> str:
    amount = f"${bill.amount:.2f}"
    due = bill.due_date.isoformat()
    if template is ReminderTemplate.THREE_DAY:
        return f'🔔 Reminder: Your bill "{bill.name}" ({amount}) is due in 3 days on {due}. - {SMS_SIGNATURE}'
    if template is ReminderTemplate.ONE_DAY:
        return f'⚠️ URGENT: Your bill "{bill.name}" ({amount}) is due TOMORROW ({due})! - {SMS_SIGNATURE}'
    return f'🚨 ALERT: Your bill "{bill.name}" ({amount}) is due TODAY! - {SMS_SIGNATURE}'


def verification_message() -> str:
    return f"🎉 Test message from {SMS_SIGNATURE}! Your SMS reminders are working correctly."

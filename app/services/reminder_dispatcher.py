from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.exc import SQLAlchemyError

from app.core.config import Settings
from app.core.errors import ConfigurationError, UpstreamFetchError
from app.core.logging import logger, set_bill_id, set_log_context, set_trace_id
from app.core.phone import format_to_e164
from app.domain.models import Bill, UserProfile
from app.domain.reminders import reminder_for, render_message
from app.services.repositories import DataRepo, store_errors
from app.services.twilio import MessagingGateway


def reference_zone(tz_name: Optional[str]) -> tzinfo:
    try:
        return ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone=%s, falling back to UTC", tz_name)
        return timezone.utc


def get_today(settings: Settings) -> date:
    return datetime.now(reference_zone(settings.timezone)).date()


@dataclass(frozen=True)
class BillReminderResult:
    bill_id: str
    bill_name: str
    days_until_due: int
    success: bool
    error: Optional[str] = None
    marker_saved: bool = True

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "billId": self.bill_id,
            "billName": self.bill_name,
            "daysUntilDue": self.days_until_due,
            "success": self.success,
        }
        if self.error:
            data["error"] = self.error
        if not self.marker_saved:
            data["markerSaved"] = False
        return data


@dataclass(frozen=True)
class DispatchReport:
    success: bool = True
    results: List[BillReminderResult] = field(default_factory=list)
    error: Optional[str] = None
    error_kind: Optional[str] = None
    skipped_reason: Optional[str] = None

    @property
    def processed_count(self) -> int:
        return len(self.results)

    @property
    def sent(self) -> int:
        return sum(1 for item in self.results if item.success)

    @property
    def failed(self) -> int:
        return sum(1 for item in self.results if not item.success)

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error}
        data: Dict[str, Any] = {
            "success": True,
            "processedCount": self.processed_count,
            "sent": self.sent,
            "failed": self.failed,
            "results": [item.to_dict() for item in self.results],
        }
        if self.skipped_reason:
            data["skipped"] = self.skipped_reason
        return data


def _load_profile(repo: DataRepo, owner_id: str) -> UserProfile:
    with store_errors("fetch user profile"):
        row = repo.get_user(owner_id)
    profile = UserProfile.from_row(row) if row else UserProfile()
    if not profile.phone_number or not profile.phone_verified:
        raise ConfigurationError("User phone not configured or verified")
    return profile


def _load_bills(repo: DataRepo, owner_id: str) -> List[Bill]:
    with store_errors("fetch bills"):
        rows = repo.list_bills(owner_id)
    return [Bill.from_row(row) for row in rows]


async def dispatch_reminders(
    repo: DataRepo,
    gateway: Optional[MessagingGateway],
    owner_id: str,
    today: date,
    tz: Optional[tzinfo] = None,
    now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
) -> DispatchReport:
    """Run one reminder pass over every bill of ``owner_id``.

    Fatal problems (no gateway, no verified phone, store unreachable) raise
    ``ConfigurationError`` or ``UpstreamFetchError`` before anything is sent.
    A failed send only marks that bill's result; the run carries on.

    ``last_reminder_sent`` is written after a successful send. If that write
    fails the bill may be reminded again on a later run the same day.
    """
    if gateway is None:
        raise ConfigurationError("Twilio credentials not configured")

    profile = _load_profile(repo, owner_id)
    # Extension over the per-bill rule: the profile-wide switch mutes the whole run.
    if not profile.notifications_enabled:
        logger.info("Reminder dispatch skipped: notifications disabled")
        return DispatchReport(skipped_reason="notifications_disabled")

    bills = _load_bills(repo, owner_id)
    destination = format_to_e164(profile.country_code, profile.phone_number)
    results: List[BillReminderResult] = []

    for bill in bills:
        decision = reminder_for(bill, today, tz)
        if not decision.send or decision.template is None:
            continue
        set_bill_id(bill.id)
        body = render_message(bill, decision.template)
        outcome = await gateway.send(destination, body)

        if not outcome.success:
            logger.warning(
                "Reminder send failed template=%s days_until_due=%s error=%s",
                decision.template.value,
                decision.days_until_due,
                outcome.error,
            )
            results.append(
                BillReminderResult(
                    bill_id=bill.id,
                    bill_name=bill.name,
                    days_until_due=decision.days_until_due,
                    success=False,
                    error=outcome.error or "Failed to send SMS",
                )
            )
            continue

        marker_saved = True
        try:
            repo.update_bill(owner_id, bill.id, {"last_reminder_sent": now()})
        except SQLAlchemyError as exc:
            marker_saved = False
            logger.warning("Reminder sent but last_reminder_sent not saved error=%s", exc)

        logger.info("Reminder sent template=%s sid=%s", decision.template.value, outcome.message_id)
        results.append(
            BillReminderResult(
                bill_id=bill.id,
                bill_name=bill.name,
                days_until_due=decision.days_until_due,
                success=True,
                marker_saved=marker_saved,
            )
        )

    set_bill_id(None)
    report = DispatchReport(results=results)
    logger.info(
        "Reminder dispatch finished processed=%s sent=%s failed=%s",
        report.processed_count,
        report.sent,
        report.failed,
    )
    return report


async def run_reminder_dispatch(
    repo: DataRepo,
    gateway: Optional[MessagingGateway],
    settings: Settings,
) -> DispatchReport:
    """Trigger entry point: one dispatch run reported as a single structure."""
    set_trace_id(f"reminders-{datetime.now(timezone.utc):%Y%m%d%H%M%S}")
    set_log_context(owner_id=settings.owner_user_id)
    tz = reference_zone(settings.timezone)
    today = datetime.now(tz).date()
    try:
        return await dispatch_reminders(repo, gateway, settings.owner_user_id, today, tz)
    except ConfigurationError as exc:
        logger.warning("Reminder dispatch not configured: %s", exc)
        return DispatchReport(success=False, error=str(exc), error_kind="not_configured")
    except UpstreamFetchError as exc:
        logger.error("Reminder dispatch aborted: %s", exc)
        return DispatchReport(success=False, error=str(exc), error_kind="upstream")

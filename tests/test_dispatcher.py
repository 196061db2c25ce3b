import asyncio
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import ConfigurationError, UpstreamFetchError
from app.core.config import Settings
from app.services.reminder_dispatcher import dispatch_reminders, run_reminder_dispatch

OWNER_ID = "00000000-0000-0000-0000-000000000001"
NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


def _add_bill(repo, today: date, name: str, offset: int, amount: str = "125.50", **extra) -> dict:
    data = {
        "name": name,
        "amount": Decimal(amount),
        "due_date": today + timedelta(days=offset),
        "category": "utilities",
        "sms_enabled": True,
    }
    data.update(extra)
    return repo.insert_bill(OWNER_ID, data)


def _dispatch(repo, gateway, today: date):
    return asyncio.run(dispatch_reminders(repo, gateway, OWNER_ID, today, timezone.utc, now=lambda: NOW))


class MarkerFailingRepo:
    def __init__(self, inner) -> None:
        self.inner = inner

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def update_bill(self, user_id, bill_id, updates):
        raise OperationalError("update bills", {}, Exception("database is locked"))


class UnreachableRepo:
    def get_user(self, user_id):
        raise OperationalError("select users", {}, Exception("connection refused"))


def test_three_day_reminder_is_sent_once(repo, gateway, verified_owner, today) -> None:
    bill = _add_bill(repo, today, "Electric", 3)

    report = _dispatch(repo, gateway, today)

    assert report.success
    assert report.processed_count == 1
    assert report.sent == 1
    assert len(gateway.sent) == 1
    to, body = gateway.sent[0]
    assert to == "+15551234567"
    assert "$125.50" in body
    assert "due in 3 days" in body
    assert (today + timedelta(days=3)).isoformat() in body

    stored = repo.get_bill(OWNER_ID, bill["id"])
    assert stored["last_reminder_sent"] is not None

    second = _dispatch(repo, gateway, today)
    assert second.processed_count == 0
    assert len(gateway.sent) == 1


def test_only_schedule_points_are_processed(repo, gateway, verified_owner, today) -> None:
    for offset in (-2, 0, 1, 2, 3, 4, 10):
        _add_bill(repo, today, f"Bill {offset}", offset)
    _add_bill(repo, today, "Muted", 1, sms_enabled=False)
    _add_bill(repo, today, "Settled", 3, payment_date=today)

    report = _dispatch(repo, gateway, today)

    assert sorted(item.days_until_due for item in report.results) == [0, 1, 3]
    assert report.sent == 3
    assert len(gateway.sent) == 3


def test_failed_send_does_not_stop_the_run(repo, make_gateway, verified_owner, today) -> None:
    gateway = make_gateway(fail_when="Water")
    failed = _add_bill(repo, today, "Water", 1)
    _add_bill(repo, today, "Internet", 3)

    report = _dispatch(repo, gateway, today)

    assert report.success
    assert report.processed_count == 2
    assert report.sent == 1
    assert report.failed == 1
    failure = next(item for item in report.results if not item.success)
    assert failure.bill_id == failed["id"]
    assert failure.error == "Twilio API error: queue overflow"
    assert repo.get_bill(OWNER_ID, failed["id"])["last_reminder_sent"] is None

    payload = report.to_dict()
    assert payload["processedCount"] == 2
    assert payload["failed"] == 1
    assert any(item.get("error") for item in payload["results"])


def test_marker_write_failure_is_reported_not_raised(repo, gateway, verified_owner, today) -> None:
    _add_bill(repo, today, "Phone", 0)

    report = _dispatch(MarkerFailingRepo(repo), gateway, today)

    assert report.sent == 1
    assert report.results[0].marker_saved is False
    assert report.results[0].to_dict()["markerSaved"] is False
    assert len(gateway.sent) == 1


def test_missing_gateway_is_a_configuration_error(repo, verified_owner, today) -> None:
    with pytest.raises(ConfigurationError):
        _dispatch(repo, None, today)


def test_unverified_phone_sends_nothing(repo, gateway, today) -> None:
    repo.ensure_user(OWNER_ID)
    repo.update_user(OWNER_ID, {"phone_number": "5551234567", "phone_verified": False})
    _add_bill(repo, today, "Electric", 3)

    with pytest.raises(ConfigurationError, match="not configured or verified"):
        _dispatch(repo, gateway, today)
    assert gateway.sent == []


def test_unreachable_store_is_an_upstream_error(gateway, today) -> None:
    with pytest.raises(UpstreamFetchError):
        _dispatch(UnreachableRepo(), gateway, today)


def test_notifications_disabled_skips_the_run(repo, gateway, verified_owner, today) -> None:
    repo.update_user(OWNER_ID, {"notifications_enabled": False})
    _add_bill(repo, today, "Electric", 3)

    report = _dispatch(repo, gateway, today)

    assert report.success
    assert report.skipped_reason == "notifications_disabled"
    assert report.to_dict()["skipped"] == "notifications_disabled"
    assert gateway.sent == []


def test_run_entry_point_reports_configuration_failure(repo, today) -> None:
    settings = Settings(database_url="sqlite://", owner_user_id=OWNER_ID, scheduler_enabled=False)

    report = asyncio.run(run_reminder_dispatch(repo, None, settings))

    assert report.success is False
    assert report.error_kind == "not_configured"
    assert report.to_dict() == {"success": False, "error": "Twilio credentials not configured"}


def test_run_entry_point_reports_upstream_failure(gateway) -> None:
    settings = Settings(database_url="sqlite://", owner_user_id=OWNER_ID, scheduler_enabled=False)

    report = asyncio.run(run_reminder_dispatch(UnreachableRepo(), gateway, settings))

    assert report.success is False
    assert report.error_kind == "upstream"


def test_corrupt_bill_row_aborts_before_any_send(repo, gateway, verified_owner, today) -> None:
    _add_bill(repo, today, "Electric", 3)
    _add_bill(repo, today, "Broken", 1, due_date="someday")

    with pytest.raises(UpstreamFetchError, match="due_date"):
        _dispatch(repo, gateway, today)
    assert gateway.sent == []

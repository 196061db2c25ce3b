from dataclasses import replace
from datetime import timedelta, timezone

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.main import create_app
from app.services.profile import JsonProfileStore
from app.services.reminder_dispatcher import get_today


def _iso(settings, offset: int) -> str:
    return (get_today(settings) + timedelta(days=offset)).isoformat()


def test_healthz(client) -> None:
    res = client.get("/healthz")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


def test_bill_lifecycle(client, settings) -> None:
    res = client.post(
        "/bills",
        json={"name": "Electric", "amount": 125.5, "due_date": _iso(settings, 3), "category": "utilities", "sms_enabled": True},
    )
    assert res.status_code == 201
    bill = res.json()
    assert bill["status"] == "due_soon"
    assert bill["amount"] == 125.5

    res = client.patch(f"/bills/{bill['id']}", json={"due_date": _iso(settings, 12)})
    assert res.status_code == 200
    assert res.json()["status"] == "upcoming"

    res = client.post(f"/bills/{bill['id']}/paid")
    assert res.json()["status"] == "paid"
    assert res.json()["payment_date"] == _iso(settings, 0)

    res = client.post(f"/bills/{bill['id']}/unpaid")
    assert res.json()["status"] == "upcoming"

    assert client.delete(f"/bills/{bill['id']}").status_code == 204
    assert client.get(f"/bills/{bill['id']}").status_code == 404


def test_bill_filters_and_summary(client, settings) -> None:
    client.post("/bills", json={"name": "Car", "amount": 300, "due_date": _iso(settings, -2), "category": "loans"})
    client.post("/bills", json={"name": "Gym", "amount": 100, "due_date": _iso(settings, 20)})

    overdue = client.get("/bills", params={"status": "overdue"}).json()["bills"]
    assert [bill["name"] for bill in overdue] == ["Car"]
    loans = client.get("/bills", params={"category": "loans"}).json()["bills"]
    assert [bill["name"] for bill in loans] == ["Car"]

    summary = client.get("/bills/summary").json()
    assert summary["total"] == 400.0
    assert summary["status_counts"]["overdue"] == 1
    assert summary["total_count"] == 2


def test_bill_validation_errors(client, settings) -> None:
    res = client.post("/bills", json={"name": "Bad", "amount": 0, "due_date": _iso(settings, 1)})
    assert res.status_code == 422

    res = client.get("/bills", params={"status": "late"})
    assert res.status_code == 400
    assert res.json()["field"] == "status"


def test_gift_routes(client, settings) -> None:
    res = client.post(
        "/gifts",
        json={"gift_name": "Watch", "recipient_name": "Dad", "amount": 50, "event_type": "birthday", "event_date": _iso(settings, 10)},
    )
    assert res.status_code == 201
    watch = res.json()
    client.post("/gifts", json={"gift_name": "Book", "recipient_name": "Jo", "amount": 30, "event_date": _iso(settings, 20)})

    res = client.post(f"/gifts/{watch['id']}/purchased")
    assert res.json()["purchased"] is True

    budget = client.get("/gifts/budget").json()
    assert budget["total"] == 80.0
    assert budget["purchased"] == 50.0
    assert budget["remaining"] == 30.0
    assert sum(len(group["gifts"]) for group in budget["upcoming_by_month"]) == 1

    upcoming = client.get("/gifts/upcoming").json()["gifts"]
    assert [gift["gift_name"] for gift in upcoming] == ["Book"]

    birthdays = client.get("/gifts", params={"event_type": "birthday"}).json()["gifts"]
    assert [gift["gift_name"] for gift in birthdays] == ["Watch"]

    res = client.patch(f"/gifts/{watch['id']}", json={"notes": "silver"})
    assert res.json()["notes"] == "silver"
    assert client.delete(f"/gifts/{watch['id']}").status_code == 204
    assert client.get(f"/gifts/{watch['id']}").status_code == 404


def test_phone_settings_and_verification(client, gateway) -> None:
    res = client.put("/settings/phone", json={"country_code": "+1", "phone_number": "(555) 123-4567"})
    assert res.status_code == 200
    assert res.json()["phone_verified"] is False
    assert res.json()["display"] == "+1 5551234567"

    res = client.post("/settings/phone/verify")
    assert res.status_code == 200
    assert res.json()["success"] is True
    assert res.json()["phone_verified"] is True
    assert gateway.sent[0][0] == "+15551234567"

    res = client.put("/settings/notifications", json={"enabled": False})
    assert res.json()["notifications_enabled"] is False

    res = client.delete("/settings/phone")
    assert res.json()["phone_number"] == ""
    assert res.json()["display"] is None


def test_invalid_phone_is_a_bad_request(client) -> None:
    res = client.put("/settings/phone", json={"country_code": "+1", "phone_number": "123"})
    assert res.status_code == 400
    assert "too short" in res.json()["error"]


def test_process_reminders(client, settings, gateway, verified_owner) -> None:
    client.post("/bills", json={"name": "Rent", "amount": 125.5, "due_date": _iso(settings, 3), "sms_enabled": True})
    client.post("/bills", json={"name": "Gym", "amount": 20, "due_date": _iso(settings, 2), "sms_enabled": True})

    res = client.post("/reminders/process")

    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["processedCount"] == 1
    assert body["results"][0]["billName"] == "Rent"
    assert body["results"][0]["daysUntilDue"] == 3
    assert "$125.50" in gateway.sent[0][1]

    again = client.post("/reminders/process").json()
    assert again["processedCount"] == 0
    assert len(gateway.sent) == 1


def test_process_reminders_without_verified_phone(client) -> None:
    res = client.post("/reminders/process")
    assert res.status_code == 400
    assert res.json() == {"success": False, "error": "User phone not configured or verified"}


def test_process_reminders_without_gateway(settings, repo, verified_owner) -> None:
    app = create_app(settings, repo=repo, profile_store=JsonProfileStore(settings.profile_store_path))
    client = TestClient(app)

    res = client.post("/reminders/process")
    assert res.status_code == 400
    assert res.json()["error"] == "Twilio credentials not configured"

    res = client.post("/sms/send", json={"to": "+15551234567", "message": "hi"})
    assert res.status_code == 503


def test_send_sms(client, make_gateway, gateway) -> None:
    res = client.post("/sms/send", json={"to": "+15551234567", "message": "hello"})
    assert res.status_code == 200
    assert res.json() == {"success": True, "messageId": "SM0001"}

    client.app.state.gateway = make_gateway(fail_when="boom")
    res = client.post("/sms/send", json={"to": "+15551234567", "message": "boom"})
    assert res.status_code == 400
    assert res.json()["success"] is False


class StoreDownRepo:
    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise OperationalError(name, {}, Exception("connection refused"))

        return fail


def test_store_failure_is_a_structured_server_error(settings) -> None:
    app = create_app(
        settings,
        repo=StoreDownRepo(),
        gateway=None,
        profile_store=JsonProfileStore(settings.profile_store_path),
    )
    client = TestClient(app)

    for method, path, body in [
        ("GET", "/bills", None),
        ("POST", "/bills", {"name": "Rent", "amount": 10, "due_date": "2026-11-01"}),
        ("GET", "/gifts/budget", None),
        ("PUT", "/settings/notifications", {"enabled": False}),
    ]:
        res = client.request(method, path, json=body)
        assert res.status_code == 500
        assert res.headers["content-type"].startswith("application/json")
        assert res.json()["success"] is False
        assert "connection refused" in res.json()["error"]


def test_scheduler_uses_reference_zone_fallback(settings, repo, gateway) -> None:
    app = create_app(
        replace(settings, scheduler_enabled=True, timezone="Mars/Olympus_Mons"),
        repo=repo,
        gateway=gateway,
        profile_store=JsonProfileStore(settings.profile_store_path),
    )

    with TestClient(app):
        scheduler = app.state.reminder_scheduler
        job = scheduler.get_jobs()[0]
        assert scheduler.timezone == timezone.utc
        assert job.trigger.timezone == timezone.utc

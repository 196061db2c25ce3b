import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("TIMEZONE", "UTC")

from datetime import date  # noqa: E402
from typing import List, Optional, Tuple  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402

from app.core.config import Settings  # noqa: E402
from app.db import models  # noqa: E402,F401
from app.db.base import Base  # noqa: E402
from app.main import create_app  # noqa: E402
from app.services.profile import JsonProfileStore  # noqa: E402
from app.services.sql_repo import SqlRepo  # noqa: E402
from app.services.twilio import SendResult  # noqa: E402

OWNER_ID = "00000000-0000-0000-0000-000000000001"


class FakeGateway:
    def __init__(self, fail_when: Optional[str] = None, error: str = "Twilio API error: queue overflow") -> None:
        self.sent: List[Tuple[str, str]] = []
        self.fail_when = fail_when
        self.error = error

    async def send(self, to: str, body: str) -> SendResult:
        if self.fail_when and self.fail_when in body:
            return SendResult(success=False, error=self.error)
        self.sent.append((to, body))
        return SendResult(success=True, message_id=f"SM{len(self.sent):04d}")


@pytest.fixture()
def today() -> date:
    return date(2026, 10, 19)


@pytest.fixture()
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'bills.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def repo(engine) -> SqlRepo:
    return SqlRepo(engine)


@pytest.fixture()
def verified_owner(repo: SqlRepo) -> str:
    repo.ensure_user(OWNER_ID)
    repo.update_user(
        OWNER_ID,
        {"phone_number": "(555) 123-4567", "country_code": "+1", "phone_verified": True},
    )
    return OWNER_ID


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture()
def make_gateway():
    return FakeGateway


@pytest.fixture()
def settings(tmp_path, engine) -> Settings:
    return Settings(
        database_url=str(engine.url),
        owner_user_id=OWNER_ID,
        timezone="UTC",
        scheduler_enabled=False,
        profile_store_path=str(tmp_path / "profile.json"),
    )


@pytest.fixture()
def client(settings: Settings, repo: SqlRepo, gateway: FakeGateway) -> TestClient:
    app = create_app(
        settings,
        repo=repo,
        gateway=gateway,
        profile_store=JsonProfileStore(settings.profile_store_path),
    )
    return TestClient(app)

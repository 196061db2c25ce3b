from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Protocol, Tuple

from app.core.errors import ConfigurationError, ValidationError
from app.core.logging import logger
from app.core.phone import format_to_e164, validate_phone_number
from app.domain.models import UserProfile
from app.domain.reminders import verification_message
from app.services.repositories import DataRepo, store_errors
from app.services.twilio import MessagingGateway, SendResult

PROFILE_KEY = "txtmoney_user_profile"


class ProfileStore(Protocol):
    def load(self) -> Optional[UserProfile]: ...

    def save(self, profile: UserProfile) -> None: ...


class JsonProfileStore:
    """Key-value slot backed by a JSON file; the profile lives under one key."""

    def __init__(self, path: str | Path, key: str = PROFILE_KEY) -> None:
        self.path = Path(path)
        self.key = key

    def _read_all(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as exc:
            logger.warning("Error loading user profile path=%s error=%s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def load(self) -> Optional[UserProfile]:
        raw = self._read_all().get(self.key)
        if not isinstance(raw, dict):
            return None
        return UserProfile.from_row(raw)

    def save(self, profile: UserProfile) -> None:
        data = self._read_all()
        data[self.key] = profile.to_dict()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2)


@dataclass
class ProfileService:
    """Single-user profile kept in a local slot and mirrored into the ``users`` row.

    The ``users`` row is what the reminder dispatcher reads. When the local slot
    is missing or unreadable the profile is seeded from that row, and each write
    only touches the columns it changes.
    """

    store: ProfileStore
    repo: DataRepo
    owner_id: str

    def get_profile(self) -> UserProfile:
        profile = self.store.load()
        if profile is not None:
            return profile
        with store_errors("fetch user profile"):
            row = self.repo.get_user(self.owner_id)
        return UserProfile.from_row(row) if row else UserProfile()

    def update_phone(self, country_code: str, phone_number: str) -> UserProfile:
        valid, error = validate_phone_number(country_code, phone_number)
        if not valid:
            raise ValidationError(error or "Invalid phone number", field="phone_number")
        profile = replace(
            self.get_profile(),
            country_code=country_code,
            phone_number=phone_number,
            phone_verified=False,
        )
        self._persist(profile, ("country_code", "phone_number", "phone_verified"))
        return profile

    def clear_phone(self) -> UserProfile:
        profile = replace(self.get_profile(), country_code="+1", phone_number="", phone_verified=False)
        self._persist(profile, ("country_code", "phone_number", "phone_verified"))
        return profile

    def set_notifications(self, enabled: bool) -> UserProfile:
        profile = replace(self.get_profile(), notifications_enabled=bool(enabled))
        self._persist(profile, ("notifications_enabled",))
        return profile

    async def verify_phone(self, gateway: Optional[MessagingGateway]) -> SendResult:
        """Send a test SMS; a successful send marks the phone as verified."""
        if gateway is None:
            raise ConfigurationError("Twilio credentials not configured")
        profile = self.get_profile()
        if not profile.phone_number:
            raise ValidationError("Phone number is required", field="phone_number")
        result = await gateway.send(
            format_to_e164(profile.country_code, profile.phone_number),
            verification_message(),
        )
        if result.success:
            self._persist(replace(profile, phone_verified=True), ("phone_verified",))
        else:
            logger.warning("Phone verification SMS failed error=%s", result.error)
        return result

    def _persist(self, profile: UserProfile, fields: Tuple[str, ...]) -> None:
        # users row first; the local slot is only written once the store accepted it
        values = profile.to_dict()
        updates = {name: values[name] for name in fields}
        if "phone_number" in updates:
            updates["phone_number"] = updates["phone_number"] or None
        with store_errors("save user profile"):
            self.repo.ensure_user(self.owner_id)
            self.repo.update_user(self.owner_id, updates)
        self.store.save(profile)

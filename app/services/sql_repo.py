from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from app.core.logging import logger

USER_COLUMNS = frozenset({"phone_number", "country_code", "phone_verified", "notifications_enabled"})
BILL_COLUMNS = frozenset(
    {"name", "amount", "due_date", "category", "sms_enabled", "payment_date", "last_reminder_sent"}
)
GIFT_COLUMNS = frozenset(
    {
        "gift_name",
        "recipient_name",
        "amount",
        "event_type",
        "event_date",
        "purchased",
        "purchase_date",
        "notes",
    }
)


def _param(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


def _params(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: _param(value) for key, value in data.items()}


def _check_columns(updates: Iterable[str], allowed: frozenset[str], table: str) -> None:
    unknown = sorted(set(updates) - allowed)
    if unknown:
        raise ValueError(f"Unknown {table} columns: {', '.join(unknown)}")


@dataclass
class SqlRepo:
    engine: Engine

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    def _session(self) -> Session:
        return Session(self.engine)

    def ensure_user(self, user_id: str) -> None:
        now = self._now_iso()
        with self._session() as session:
            session.execute(
                text(
                    """
                    insert into users (id, phone_verified, notifications_enabled, created_at, updated_at)
                    values (:user_id, :verified, :enabled, :now, :now)
                    on conflict (id) do nothing
                    """
                ),
                {"user_id": user_id, "verified": False, "enabled": True, "now": now},
            )
            session.commit()

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        sql = text(
            """
            select id, phone_number, country_code, phone_verified, notifications_enabled
            from users
            where id = :user_id
            """
        )
        with self._session() as session:
            row = session.execute(sql, {"user_id": user_id}).mappings().first()
            return dict(row) if row else None

    def update_user(self, user_id: str, updates: Dict[str, Any]) -> None:
        if not updates:
            return
        _check_columns(updates, USER_COLUMNS, "users")
        params = _params(updates)
        fields = [f"{key} = :{key}" for key in params]
        fields.append("updated_at = :updated_at")
        params["updated_at"] = self._now_iso()
        params["user_id"] = user_id
        with self._session() as session:
            session.execute(text(f"update users set {', '.join(fields)} where id = :user_id"), params)
            session.commit()

    def list_bills(self, user_id: str, category: Optional[str] = None) -> list[Dict[str, Any]]:
        clauses = ["user_id = :user_id"]
        params: Dict[str, Any] = {"user_id": user_id}
        if category:
            clauses.append("category = :category")
            params["category"] = _param(category)
        sql = text(f"select * from bills where {' and '.join(clauses)} order by due_date asc, created_at asc")
        with self._session() as session:
            rows = session.execute(sql, params).mappings().all()
            return [dict(row) for row in rows]

    def get_bill(self, user_id: str, bill_id: str) -> Optional[Dict[str, Any]]:
        sql = text("select * from bills where id = :bill_id and user_id = :user_id")
        with self._session() as session:
            row = session.execute(sql, {"bill_id": bill_id, "user_id": user_id}).mappings().first()
            return dict(row) if row else None

    def insert_bill(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        now = self._now_iso()
        params = _params(
            {
                "id": str(uuid.uuid4()),
                "user_id": user_id,
                "name": data.get("name"),
                "amount": data.get("amount"),
                "due_date": data.get("due_date"),
                "category": data.get("category") or "other",
                "sms_enabled": bool(data.get("sms_enabled", False)),
                "payment_date": data.get("payment_date"),
                "created_at": now,
                "updated_at": now,
            }
        )
        with self._session() as session:
            row = session.execute(
                text(
                    """
                    insert into bills (
                        id, user_id, name, amount, due_date, category, sms_enabled,
                        payment_date, created_at, updated_at
                    ) values (
                        :id, :user_id, :name, :amount, :due_date, :category, :sms_enabled,
                        :payment_date, :created_at, :updated_at
                    )
                    returning *
                    """
                ),
                params,
            ).mappings().first()
            session.commit()
            logger.info("Bill created bill_id=%s", params["id"])
            return dict(row)

    def update_bill(self, user_id: str, bill_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not updates:
            return self.get_bill(user_id, bill_id)
        _check_columns(updates, BILL_COLUMNS, "bills")
        return self._update_returning("bills", user_id, bill_id, updates)

    def delete_bill(self, user_id: str, bill_id: str) -> bool:
        return self._delete("bills", user_id, bill_id)

    def list_gifts(
        self,
        user_id: str,
        event_type: Optional[str] = None,
        purchased: Optional[bool] = None,
    ) -> list[Dict[str, Any]]:
        clauses = ["user_id = :user_id"]
        params: Dict[str, Any] = {"user_id": user_id}
        if event_type:
            clauses.append("event_type = :event_type")
            params["event_type"] = _param(event_type)
        if purchased is not None:
            clauses.append("purchased = :purchased")
            params["purchased"] = bool(purchased)
        sql = text(f"select * from gifts where {' and '.join(clauses)} order by event_date asc, created_at asc")
        with self._session() as session:
            rows = session.execute(sql, params).mappings().all()
            return [dict(row) for row in rows]

    def get_gift(self, user_id: str, gift_id: str) -> Optional[Dict[str, Any]]:
        sql = text("select * from gifts where id = :gift_id and user_id = :user_id")
        with self._session() as session:
            row = session.execute(sql, {"gift_id": gift_id, "user_id": user_id}).mappings().first()
            return dict(row) if row else None

    def insert_gift(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        now = self._now_iso()
        params = _params(
            {
                "id": str(uuid.uuid4()),
                "user_id": user_id,
                "gift_name": data.get("gift_name"),
                "recipient_name": data.get("recipient_name"),
                "amount": data.get("amount"),
                "event_type": data.get("event_type") or "other",
                "event_date": data.get("event_date"),
                "purchased": bool(data.get("purchased", False)),
                "purchase_date": data.get("purchase_date"),
                "notes": data.get("notes"),
                "created_at": now,
                "updated_at": now,
            }
        )
        with self._session() as session:
            row = session.execute(
                text(
                    """
                    insert into gifts (
                        id, user_id, gift_name, recipient_name, amount, event_type, event_date,
                        purchased, purchase_date, notes, created_at, updated_at
                    ) values (
                        :id, :user_id, :gift_name, :recipient_name, :amount, :event_type, :event_date,
                        :purchased, :purchase_date, :notes, :created_at, :updated_at
                    )
                    returning *
                    """
                ),
                params,
            ).mappings().first()
            session.commit()
            logger.info("Gift created gift_id=%s", params["id"])
            return dict(row)

    def update_gift(self, user_id: str, gift_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not updates:
            return self.get_gift(user_id, gift_id)
        _check_columns(updates, GIFT_COLUMNS, "gifts")
        return self._update_returning("gifts", user_id, gift_id, updates)

    def delete_gift(self, user_id: str, gift_id: str) -> bool:
        return self._delete("gifts", user_id, gift_id)

    def _update_returning(
        self,
        table: str,
        user_id: str,
        record_id: str,
        updates: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        params = _params(updates)
        fields = [f"{key} = :{key}" for key in params]
        fields.append("updated_at = :updated_at")
        params["updated_at"] = self._now_iso()
        params["record_id"] = record_id
        params["user_id"] = user_id
        sql = text(
            f"update {table} set {', '.join(fields)} "
            "where id = :record_id and user_id = :user_id returning *"
        )
        with self._session() as session:
            row = session.execute(sql, params).mappings().first()
            session.commit()
            return dict(row) if row else None

    def _delete(self, table: str, user_id: str, record_id: str) -> bool:
        with self._session() as session:
            result = session.execute(
                text(f"delete from {table} where id = :record_id and user_id = :user_id"),
                {"record_id": record_id, "user_id": user_id},
            )
            session.commit()
            return bool(result.rowcount)

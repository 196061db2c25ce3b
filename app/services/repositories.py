from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import UpstreamFetchError
from app.core.logging import logger


@contextmanager
def store_errors(action: str) -> Iterator[None]:
    """Re-raise record store failures as ``UpstreamFetchError``."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Record store failure action=%s error=%s", action, exc)
        raise UpstreamFetchError(f"Failed to {action}: {exc}") from exc


class DataRepo(Protocol):
    def ensure_user(self, user_id: str) -> None: ...

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]: ...

    def update_user(self, user_id: str, updates: Dict[str, Any]) -> None: ...

    def list_bills(
        self,
        user_id: str,
        category: Optional[str] = None,
    ) -> list[Dict[str, Any]]: ...

    def get_bill(self, user_id: str, bill_id: str) -> Optional[Dict[str, Any]]: ...

    def insert_bill(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]: ...

    def update_bill(self, user_id: str, bill_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]: ...

    def delete_bill(self, user_id: str, bill_id: str) -> bool: ...

    def list_gifts(
        self,
        user_id: str,
        event_type: Optional[str] = None,
        purchased: Optional[bool] = None,
    ) -> list[Dict[str, Any]]: ...

    def get_gift(self, user_id: str, gift_id: str) -> Optional[Dict[str, Any]]: ...

    def insert_gift(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]: ...

    def update_gift(self, user_id: str, gift_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]: ...

    def delete_gift(self, user_id: str, gift_id: str) -> bool: ...

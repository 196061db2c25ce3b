from __future__ import annotations

import logging
import uuid
from contextvars import ContextVar
from typing import Optional

_trace_id: ContextVar[str] = ContextVar("trace_id", default="-")
_owner_id: ContextVar[str] = ContextVar("owner_id", default="-")
_bill_id: ContextVar[str] = ContextVar("bill_id", default="-")

logger = logging.getLogger("bill_reminders")


def set_trace_id(value: Optional[str] = None) -> str:
    trace = value or uuid.uuid4().hex
    _trace_id.set(trace)
    return trace


def get_trace_id() -> str:
    return _trace_id.get()


def set_log_context(owner_id: Optional[str] = None, bill_id: Optional[str] = None) -> None:
    _owner_id.set(owner_id or "-")
    _bill_id.set(bill_id or "-")


def set_bill_id(bill_id: Optional[str]) -> None:
    _bill_id.set(bill_id or "-")


def get_owner_id() -> str:
    return _owner_id.get()


def get_bill_id() -> str:
    return _bill_id.get()


class TraceIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = get_trace_id()
        record.owner_id = get_owner_id()
        record.bill_id = get_bill_id()
        return True


def setup_logging(level: str = "INFO") -> None:
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s trace_id=%(trace_id)s owner_id=%(owner_id)s "
        "bill_id=%(bill_id)s - %(message)s"
    )
    handler.setFormatter(formatter)
    handler.addFilter(TraceIdFilter())
    logger.addHandler(handler)
    logger.setLevel(level)

from __future__ import annotations

import re
from typing import Optional, Tuple

E164_RE = re.compile(r"^\+[1-9]\d{1,14}$")
_ALLOWED_CHARS_RE = re.compile(r"^[\d\s\-()]+$")
_NON_DIGIT_RE = re.compile(r"\D")


def _digits(value: str) -> str:
    return _NON_DIGIT_RE.sub("", value or "")


def validate_phone_number(country_code: str, phone_number: str) -> Tuple[bool, Optional[str]]:
    digits = _digits(phone_number)
    if not digits:
        return False, "Phone number is required"
    if len(digits) < 7:
        return False, "Phone number is too short (minimum 7 digits)"
    if len(_digits(country_code)) + len(digits) > 15:
        return False, "Phone number is too long (maximum 15 digits total)"
    if not _ALLOWED_CHARS_RE.match(phone_number):
        return False, "Phone number contains invalid characters"
    return True, None


def format_phone_number(country_code: str, phone_number: str) -> str:
    return f"{country_code} {_digits(phone_number)}"


def format_to_e164(country_code: str, phone_number: str) -> str:
    return f"+{_digits(country_code)}{_digits(phone_number)}"


def is_e164(value: str) -> bool:
    return bool(E164_RE.match(value or ""))

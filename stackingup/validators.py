"""
StackingUp — validators.py
─────────────────────────────────────────────────────────────────
Input shape rules. Pure functions, no I/O.

  Phone   +34 then 6 or 7 then 8 digits (whitespace ignored)
  Code    exactly 7 ASCII digits
  Email   local[.-segments]@domain[.-segments].tld (tld 2–3 chars)
  Password  ≥ 8 chars, one digit, one lowercase, one uppercase
─────────────────────────────────────────────────────────────────
"""

import re
from typing import Optional

PHONE_RE    = re.compile(r"\+34[67][0-9]{8}")
CODE_RE     = re.compile(r"[0-9]{7}")
EMAIL_RE    = re.compile(r"\w+([.-]\w+)*@\w+([.-]\w+)*\.\w{2,3}", re.ASCII)
WHITESPACE  = re.compile(r"\s+")

MIN_PASSWORD_LENGTH = 8
MIN_NAME_LENGTH     = 3


def normalize_phone(raw: str) -> str:
    """Strip every whitespace character: '+34 777 77 77 77' → '+34777777777'."""
    return WHITESPACE.sub("", raw)


def valid_phone(raw: Optional[str]) -> Optional[str]:
    """Returns the normalized number, or None if it does not have the accepted shape."""
    if not raw:
        return None
    phone = normalize_phone(raw)
    return phone if PHONE_RE.fullmatch(phone) else None


def is_valid_code(code: Optional[str]) -> bool:
    return bool(code) and CODE_RE.fullmatch(code) is not None


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and EMAIL_RE.fullmatch(email.strip()) is not None


def is_strong_password(password: Optional[str]) -> bool:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        return False
    return (
        re.search(r"[0-9]", password) is not None
        and re.search(r"[a-z]", password) is not None
        and re.search(r"[A-Z]", password) is not None
    )


def is_valid_name(value: Optional[str]) -> bool:
    return bool(value) and len(value.strip()) >= MIN_NAME_LENGTH

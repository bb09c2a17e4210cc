"""
StackingUp — models/user.py
─────────────────────────────────────────────────────────────────
Account & credential table definitions, the role ladder, Credential.
No I/O here.
─────────────────────────────────────────────────────────────────
"""

from dataclasses import dataclass
from enum import Enum


# ─────────────────────────────────────────────
# SQL
# ─────────────────────────────────────────────
ACCOUNTS_TABLE = """
    CREATE TABLE IF NOT EXISTS accounts (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        name        TEXT NOT NULL,
        surname     TEXT NOT NULL,
        phone       TEXT,
        created_at  TEXT NOT NULL
    );
"""

CREDENTIALS_TABLE = """
    CREATE TABLE IF NOT EXISTS credentials (
        email       TEXT PRIMARY KEY,            -- lower-cased
        password    TEXT NOT NULL,               -- bcrypt hash
        role        TEXT NOT NULL DEFAULT 'UNVERIFIED',
        account_id  INTEGER NOT NULL UNIQUE REFERENCES accounts(id),
        created_at  TEXT NOT NULL,
        updated_at  TEXT NOT NULL
    );
"""


# ─────────────────────────────────────────────
# Role ladder
# ─────────────────────────────────────────────
class Role(str, Enum):
    UNVERIFIED     = "UNVERIFIED"
    PHONE_VERIFIED = "PHONE_VERIFIED"
    SUBSCRIBED     = "SUBSCRIBED"

    @property
    def rank(self) -> int:
        return _LADDER.index(self)

    def __lt__(self, other):
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def parse(cls, value) -> "Role":
        """
        Strict decode of a stored or claimed role.
        Accepts the names used by earlier revisions (USER, VERIFIED).
        Raises ValueError for anything else.
        """
        if isinstance(value, Role):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Role must be a string, got {type(value).__name__}")
        if value in _LEGACY_NAMES:
            return _LEGACY_NAMES[value]
        return cls(value)


_LADDER = (Role.UNVERIFIED, Role.PHONE_VERIFIED, Role.SUBSCRIBED)

_LEGACY_NAMES = {
    "USER":     Role.UNVERIFIED,
    "VERIFIED": Role.PHONE_VERIFIED,
}


# ─────────────────────────────────────────────
# Dataclasses
# ─────────────────────────────────────────────
@dataclass
class Credential:
    email:      str
    password:   str        # bcrypt hash
    role:       Role
    account_id: int

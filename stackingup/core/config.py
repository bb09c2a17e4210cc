"""
StackingUp — core/config.py
─────────────────────────────────────────────────────────────────
Single source of truth for ALL environment variables.

The environment is read exactly once, by load_config(), and the
resulting Config is handed to create_app(). Nothing else calls
os.getenv().

Usage:
    from stackingup.core.config import load_config

    cfg = load_config()
    print(cfg.DB_PATH)
─────────────────────────────────────────────────────────────────
"""

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from dotenv import load_dotenv

DEFAULT_JWT_SECRET = "stackingupsecretlocal"

# Fixed lifetime from issuance. Not configurable.
SESSION_TTL = timedelta(hours=24)

POLICY_REISSUE = "reissue"
POLICY_LOGOUT  = "logout"


@dataclass(frozen=True)
class Config:
    # ── App ───────────────────────────────────
    ENV:          str = "development"            # "production" in prod
    LOG_LEVEL:    str = "INFO"
    DB_PATH:      str = "stackingup.db"
    FRONTEND_URL: str = "http://localhost:3000"

    # ── Session ───────────────────────────────
    JWT_SECRET:    str = DEFAULT_JWT_SECRET
    ALGORITHM:     str = "HS256"
    COOKIE_NAME:   str = "authToken"
    COOKIE_DOMAIN: Optional[str] = None
    BCRYPT_ROUNDS: int = 12

    # ── Phone verification (Twilio Verify) ────
    TWILIO_ACCOUNT_SID:    str = ""
    TWILIO_AUTH_TOKEN:     str = ""
    TWILIO_VERIFY_SID:     str = ""
    VERIFY_LOCALE:         str = "es"
    CHALLENGE_TIMEOUT_SEC: float = 10.0
    DEV_VERIFICATION_CODE: str = "1234567"

    # "reissue": new token after a role change, "logout": clear the session
    VERIFY_SESSION_POLICY: str = POLICY_REISSUE

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            ENV                   = os.getenv("ENV", cls.ENV),
            LOG_LEVEL             = os.getenv("LOG_LEVEL", cls.LOG_LEVEL).upper(),
            DB_PATH               = os.getenv("DB_PATH", cls.DB_PATH),
            FRONTEND_URL          = os.getenv("FRONTEND_URL", cls.FRONTEND_URL),
            JWT_SECRET            = os.getenv("JWT_SECRET", cls.JWT_SECRET),
            COOKIE_DOMAIN         = os.getenv("COOKIE_DOMAIN") or None,
            BCRYPT_ROUNDS         = int(os.getenv("BCRYPT_ROUNDS", cls.BCRYPT_ROUNDS)),
            TWILIO_ACCOUNT_SID    = os.getenv("TWILIO_ACCOUNT_SID", ""),
            TWILIO_AUTH_TOKEN     = os.getenv("TWILIO_AUTH_TOKEN", ""),
            TWILIO_VERIFY_SID     = os.getenv("TWILIO_VERIFY_SID", ""),
            VERIFY_LOCALE         = os.getenv("VERIFY_LOCALE", cls.VERIFY_LOCALE),
            CHALLENGE_TIMEOUT_SEC = float(os.getenv("CHALLENGE_TIMEOUT_SEC", cls.CHALLENGE_TIMEOUT_SEC)),
            DEV_VERIFICATION_CODE = os.getenv("DEV_VERIFICATION_CODE", cls.DEV_VERIFICATION_CODE),
            VERIFY_SESSION_POLICY = os.getenv("VERIFY_SESSION_POLICY", cls.VERIFY_SESSION_POLICY).lower(),
        )

    def __post_init__(self):
        if self.VERIFY_SESSION_POLICY not in (POLICY_REISSUE, POLICY_LOGOUT):
            raise ValueError(
                f"VERIFY_SESSION_POLICY must be '{POLICY_REISSUE}' or '{POLICY_LOGOUT}', "
                f"got '{self.VERIFY_SESSION_POLICY}'"
            )

    # ── Shortcuts ─────────────────────────────
    @property
    def is_production(self) -> bool:
        return self.ENV == "production"

    @property
    def twilio_ready(self) -> bool:
        return bool(self.TWILIO_ACCOUNT_SID and self.TWILIO_AUTH_TOKEN and self.TWILIO_VERIFY_SID)

    @property
    def session_ttl(self) -> timedelta:
        return SESSION_TTL

    @property
    def uses_default_secret(self) -> bool:
        return self.JWT_SECRET == DEFAULT_JWT_SECRET

    def __repr__(self):
        return (
            f"<Config env={self.ENV} db={self.DB_PATH} "
            f"twilio={'✓' if self.twilio_ready else '✗'} "
            f"policy={self.VERIFY_SESSION_POLICY}>"
        )


def load_config() -> Config:
    """Load .env, then build the process-wide Config. Call once at startup."""
    load_dotenv()
    return Config.from_env()

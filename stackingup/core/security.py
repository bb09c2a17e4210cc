"""
StackingUp — core/security.py
─────────────────────────────────────────────────────────────────
All token, password and cookie helpers in one place.

Usage:
    from stackingup.core.security import TokenService, get_current_claims

    tokens = TokenService(cfg.JWT_SECRET, ttl=cfg.session_ttl)
    token  = tokens.issue("t@test.com", Role.UNVERIFIED, 1)
    claims = tokens.validate(token)      # raises TokenError

    # In a route:
    claims = Depends(get_current_claims)
─────────────────────────────────────────────────────────────────
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

import bcrypt
from fastapi import Request
from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from stackingup.core.config import SESSION_TTL
from stackingup.core.errors import AuthError
from stackingup.models.user import Role

logger = logging.getLogger("stackingup.security")


# ─────────────────────────────────────────────
# Token Service
# ─────────────────────────────────────────────
class TokenFailure(str, Enum):
    EXPIRED       = "jwt expired"
    MALFORMED     = "jwt malformed"
    BAD_SIGNATURE = "invalid signature"


class TokenError(AuthError):
    """A presented token failed validation. `failure` says why."""

    def __init__(self, failure: TokenFailure):
        super().__init__(f"Unauthorized: {failure.value}")
        self.failure = failure


@dataclass(frozen=True)
class Claims:
    email:      str
    role:       Role
    account_id: int
    issued_at:  datetime
    expires_at: datetime


class TokenService:
    """
    Signs and validates session tokens.
    Lifetime is fixed from issuance (no sliding expiry).
    Rotating the secret invalidates every outstanding token.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", ttl: timedelta = SESSION_TTL):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret   = secret
        self.algorithm = algorithm
        self.ttl       = ttl

    def issue(self, email: str, role: Role, account_id: int) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub":   str(account_id),
            "email": email,
            "role":  role.value,
            "iat":   now,
            "exp":   now + self.ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def validate(self, token: str) -> Claims:
        # Structure first, so a garbled token is never reported as a bad signature
        try:
            jwt.get_unverified_claims(token)
        except JWTError:
            raise TokenError(TokenFailure.MALFORMED)

        try:
            payload = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise TokenError(TokenFailure.EXPIRED)
        except JWTClaimsError:
            raise TokenError(TokenFailure.MALFORMED)
        except JWTError:
            raise TokenError(TokenFailure.BAD_SIGNATURE)

        return self._to_claims(payload)

    @staticmethod
    def _to_claims(payload: dict) -> Claims:
        try:
            return Claims(
                email=str(payload["email"]),
                role=Role.parse(payload["role"]),
                account_id=int(payload["sub"]),
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.info(f"Token claims rejected: {e}")
            raise TokenError(TokenFailure.MALFORMED)


# ─────────────────────────────────────────────
# Passwords
# ─────────────────────────────────────────────
def hash_password(password: str, rounds: int = 12) -> str:
    """bcrypt with a fresh salt per call."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode(), salt).decode()


def check_password(password: str, password_hash: str) -> bool:
    """Constant-time compare. A malformed stored hash never matches."""
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


# ─────────────────────────────────────────────
# Request helpers
# ─────────────────────────────────────────────
def get_token_from_request(request: Request) -> Optional[str]:
    """
    Extract the session token from:
    1. Cookie: authToken
    2. Header: Authorization: Bearer <token>
    Returns None if not found.
    """
    cfg = request.app.state.cfg
    token = request.cookies.get(cfg.COOKIE_NAME)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[len("Bearer "):].strip()
    return token or None


async def get_current_claims(request: Request) -> Claims:
    """
    FastAPI dependency — returns validated claims.

    Raises 401 with:
        "Unauthorized"                    no token presented
        "Unauthorized: <failure>"         expired / malformed / bad signature
    """
    token = get_token_from_request(request)
    if not token:
        raise AuthError()
    return request.app.state.tokens.validate(token)


# ─────────────────────────────────────────────
# Cookie helpers
# ─────────────────────────────────────────────
def set_session_cookie(response, token: str, cfg):
    """Set the token as an HTTP-only, domain-scoped cookie."""
    response.set_cookie(
        key      = cfg.COOKIE_NAME,
        value    = token,
        httponly = True,
        secure   = cfg.is_production,   # HTTPS only in prod
        samesite = "lax",
        domain   = cfg.COOKIE_DOMAIN,
        max_age  = int(cfg.session_ttl.total_seconds()),
    )


def clear_session_cookie(response, cfg):
    """Expire the session cookie (negative max-age)."""
    response.set_cookie(
        key      = cfg.COOKIE_NAME,
        value    = "",
        httponly = True,
        secure   = cfg.is_production,
        samesite = "lax",
        domain   = cfg.COOKIE_DOMAIN,
        max_age  = -1,
    )

"""
StackingUp — core/errors.py
─────────────────────────────────────────────────────────────────
Error taxonomy shared by every layer.

  ValidationError      400  malformed / missing input
  BadCredentialsError  400  wrong email or password (never 401)
  AuthError            401  missing / expired / invalid token
  PreconditionError    403  role not eligible for the transition
  IntegrityError       500  read-back after write did not match
  DependencyError      500  store or challenge channel failed

`message` is what the caller sees. `detail` is only ever logged.
─────────────────────────────────────────────────────────────────
"""

from enum import Enum
from typing import Optional

INTERNAL_ERROR_MESSAGE = "Internal server error"


class ErrorKind(str, Enum):
    MISSING_FIELD      = "missing_field"
    INVALID_BODY       = "invalid_body"
    INVALID_EMAIL      = "invalid_email"
    INVALID_NAME       = "invalid_name"
    WEAK_PASSWORD      = "weak_password"
    SAME_PASSWORD      = "same_password"
    WRONG_OLD_PASSWORD = "wrong_old_password"
    DUPLICATE_EMAIL    = "duplicate_email"
    MISSING_PHONE      = "missing_phone"
    INVALID_PHONE      = "invalid_phone"
    INVALID_CODE       = "invalid_code"
    CODE_MISMATCH      = "code_mismatch"
    BAD_CREDENTIALS    = "bad_credentials"
    UNAUTHORIZED       = "unauthorized"
    ALREADY_VERIFIED   = "already_verified"
    NOT_ELIGIBLE       = "not_eligible"
    ROLE_NOT_PERSISTED = "role_not_persisted"
    STORE_FAILURE      = "store_failure"
    CHALLENGE_FAILURE  = "challenge_failure"


class ServiceError(Exception):
    """Base for every error that maps onto an HTTP outcome."""

    status_code: int = 500

    def __init__(self, message: str, kind: ErrorKind, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.kind    = kind
        self.detail  = detail

    @property
    def is_fault(self) -> bool:
        return self.status_code >= 500


class ValidationError(ServiceError):
    status_code = 400


class BadCredentialsError(ServiceError):
    status_code = 400

    def __init__(self):
        super().__init__("Invalid username or password", ErrorKind.BAD_CREDENTIALS)


class AuthError(ServiceError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, ErrorKind.UNAUTHORIZED)


class PreconditionError(ServiceError):
    status_code = 403


class IntegrityError(ServiceError):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(INTERNAL_ERROR_MESSAGE, ErrorKind.ROLE_NOT_PERSISTED, detail)


class DependencyError(ServiceError):
    status_code = 500

    def __init__(self, kind: ErrorKind, detail: str):
        super().__init__(INTERNAL_ERROR_MESSAGE, kind, detail)


class StoreError(DependencyError):
    """The data store rejected a query."""

    def __init__(self, detail: str):
        super().__init__(ErrorKind.STORE_FAILURE, detail)


class ChallengeError(DependencyError):
    """The one-time-code channel failed (not a wrong code)."""

    def __init__(self, detail: str):
        super().__init__(ErrorKind.CHALLENGE_FAILURE, detail)


# ─────────────────────────────────────────────
# Contract errors
# ─────────────────────────────────────────────
def missing_field(message: str = "Missing required fields") -> ValidationError:
    return ValidationError(message, ErrorKind.MISSING_FIELD)

def invalid_email() -> ValidationError:
    return ValidationError("Invalid email format", ErrorKind.INVALID_EMAIL)

def invalid_name() -> ValidationError:
    return ValidationError("Name and surname must be at least 3 characters long", ErrorKind.INVALID_NAME)

def weak_password() -> ValidationError:
    return ValidationError(
        "Password must be at least 8 characters long and contain "
        "a digit, a lowercase and an uppercase letter",
        ErrorKind.WEAK_PASSWORD,
    )

def same_password() -> ValidationError:
    return ValidationError("New password must be different from the old one", ErrorKind.SAME_PASSWORD)

def wrong_old_password() -> ValidationError:
    return ValidationError("Old password is incorrect", ErrorKind.WRONG_OLD_PASSWORD)

def duplicate_email() -> ValidationError:
    return ValidationError("Email already registered", ErrorKind.DUPLICATE_EMAIL)

def missing_phone() -> ValidationError:
    return ValidationError("User has no phone number", ErrorKind.MISSING_PHONE)

def invalid_phone() -> ValidationError:
    return ValidationError("Invalid phone number", ErrorKind.INVALID_PHONE)

def invalid_code() -> ValidationError:
    return ValidationError("Invalid verification code format", ErrorKind.INVALID_CODE)

def code_mismatch() -> ValidationError:
    return ValidationError("Invalid verification code", ErrorKind.CODE_MISMATCH)

def already_verified() -> PreconditionError:
    return PreconditionError("User already verified.", ErrorKind.ALREADY_VERIFIED)

def not_eligible() -> PreconditionError:
    return PreconditionError("User must be verified to suscribe.", ErrorKind.NOT_ELIGIBLE)

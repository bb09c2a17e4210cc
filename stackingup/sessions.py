"""
StackingUp — sessions.py
─────────────────────────────────────────────────────────────────
Session Handlers: register + login.
(logout has no server-side state; it only clears the cookie, see auth.py)

Login never says whether the email exists. "No such user" and
"wrong password" produce the same BadCredentialsError.
─────────────────────────────────────────────────────────────────
"""

import logging
from dataclasses import dataclass
from typing import Optional

from stackingup.core import errors
from stackingup.core.security import TokenService, check_password, hash_password
from stackingup.models.user import Role
from stackingup.store import CredentialStore, normalize_email
from stackingup.validators import (
    is_strong_password, is_valid_email, is_valid_name, normalize_phone,
)

logger = logging.getLogger("stackingup.sessions")


@dataclass(frozen=True)
class LoginResult:
    email:      str
    role:       Role
    account_id: int
    token:      str

    def profile(self) -> dict:
        return {
            "email":      self.email,
            "role":       self.role.value,
            "account_id": self.account_id,
        }


class SessionService:

    def __init__(self, store: CredentialStore, tokens: TokenService, bcrypt_rounds: int = 12):
        self.store         = store
        self.tokens        = tokens
        self.bcrypt_rounds = bcrypt_rounds

    async def register(self, name: Optional[str], surname: Optional[str],
                       email: Optional[str], password: Optional[str],
                       phone: Optional[str] = None) -> int:
        """
        Creates the account row, then the credential row (role UNVERIFIED),
        in one transaction.
        Returns the new account id.
        """
        if not (name and surname and email and password):
            raise errors.missing_field()
        if not (is_valid_name(name) and is_valid_name(surname)):
            raise errors.invalid_name()
        if not is_valid_email(email):
            raise errors.invalid_email()
        if not is_strong_password(password):
            raise errors.weak_password()

        email = normalize_email(email)
        if await self.store.find_credential_by_email(email) is not None:
            raise errors.duplicate_email()

        # Phone shape is checked when verification starts, not here
        stored_phone = normalize_phone(phone) if phone else None

        account_id = await self.store.create_account(
            name.strip(), surname.strip(), stored_phone,
            email, hash_password(password, self.bcrypt_rounds), Role.UNVERIFIED,
        )
        logger.info(f"Registered account {account_id}")
        return account_id

    async def login(self, email: Optional[str], password: Optional[str]) -> LoginResult:
        if not email or not password:
            raise errors.missing_field("Missing email or password")
        if not is_valid_email(email):
            raise errors.invalid_email()

        cred = await self.store.find_credential_by_email(email)
        if cred is None or not check_password(password, cred.password):
            raise errors.BadCredentialsError()

        token = self.tokens.issue(cred.email, cred.role, cred.account_id)
        return LoginResult(
            email=cred.email,
            role=cred.role,
            account_id=cred.account_id,
            token=token,
        )

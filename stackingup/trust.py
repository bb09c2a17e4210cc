"""
StackingUp — trust.py
─────────────────────────────────────────────────────────────────
Trust-Level State Machine

    UNVERIFIED ──(phone challenge)──▶ PHONE_VERIFIED ──(subscribe)──▶ SUBSCRIBED

HOW A TRANSITION COMMITS:
  1. Role precondition checked against the token's claims,
     then against the persisted role (a stale token can still
     claim a lower role than the store holds)
  2. (phone only) challenge started, then checked with the provider
  3. New role written, only over the role the precondition saw
  4. Role read back and must equal what was written
  5. Replacement token minted with the new role

A token is never minted for a role the store has not confirmed,
and no transition moves an account down the ladder.
Step 4 failing is an IntegrityError, never ignored.

Every call is stateless: check_verification re-resolves and
re-validates the phone number rather than trusting start_verification.
─────────────────────────────────────────────────────────────────
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from stackingup.challenge import ChallengeOutcome
from stackingup.core import errors
from stackingup.core.security import Claims, TokenService, check_password, hash_password
from stackingup.models.user import Role
from stackingup.store import CredentialStore
from stackingup.validators import is_strong_password, is_valid_code, valid_phone

logger = logging.getLogger("stackingup.trust")


@dataclass(frozen=True)
class Transition:
    """Result of a committed role change."""
    account_id: int
    previous:   Role
    role:       Role
    token:      str


class TrustLevelMachine:

    def __init__(self, store: CredentialStore, challenge, tokens: TokenService,
                 bcrypt_rounds: int = 12):
        self.store         = store
        self.challenge     = challenge
        self.tokens        = tokens
        self.bcrypt_rounds = bcrypt_rounds

    # ─── Phone verification ───────────────────

    async def start_verification(self, claims: Claims) -> str:
        """
        UNVERIFIED only. Sends an SMS challenge to the account's phone.
        Does not change the role. Returns the normalized number.
        """
        await self._require_unverified(claims)
        phone = await self._resolve_phone(claims.account_id)

        outcome = await self.challenge.start(phone)
        self._raise_if_failed(outcome, claims.account_id, "start")

        logger.info(f"Verification started for account {claims.account_id}")
        return phone

    async def check_verification(self, claims: Claims, code: Optional[str]) -> Transition:
        """UNVERIFIED → PHONE_VERIFIED once the provider approves `code`."""
        await self._require_unverified(claims)
        if not is_valid_code(code):
            raise errors.invalid_code()
        phone = await self._resolve_phone(claims.account_id)

        outcome = await self.challenge.check(phone, code)
        self._raise_if_failed(outcome, claims.account_id, "check")
        if not outcome.approved:
            logger.info(f"Verification code rejected for account {claims.account_id}: {outcome.status.value}")
            raise errors.code_mismatch()

        return await self._commit(
            claims, Role.UNVERIFIED, Role.PHONE_VERIFIED, errors.already_verified
        )

    # ─── Subscription ─────────────────────────

    async def subscribe(self, claims: Claims) -> Transition:
        """PHONE_VERIFIED → SUBSCRIBED. No external challenge."""
        if claims.role != Role.PHONE_VERIFIED:
            raise errors.not_eligible()
        if await self._persisted_role(claims.account_id) != Role.PHONE_VERIFIED:
            raise errors.not_eligible()
        return await self._commit(
            claims, Role.PHONE_VERIFIED, Role.SUBSCRIBED, errors.not_eligible
        )

    # ─── Password ─────────────────────────────

    async def change_password(self, claims: Claims,
                              old_password: Optional[str], new_password: Optional[str]):
        """Role-independent. No token reissue, the role does not change."""
        if not old_password or not new_password:
            raise errors.missing_field("Old and new password are required")

        cred = await self.store.find_credential_by_account(claims.account_id)
        if cred is None or not check_password(old_password, cred.password):
            raise errors.wrong_old_password()
        if new_password == old_password:
            raise errors.same_password()
        if not is_strong_password(new_password):
            raise errors.weak_password()

        await self.store.update_password(
            claims.account_id, hash_password(new_password, self.bcrypt_rounds)
        )
        logger.info(f"Password changed for account {claims.account_id}")

    # ─── Internals ────────────────────────────

    async def _require_unverified(self, claims: Claims):
        if claims.role != Role.UNVERIFIED:
            raise errors.already_verified()
        if await self._persisted_role(claims.account_id) > Role.UNVERIFIED:
            logger.info(f"Stale UNVERIFIED token refused for account {claims.account_id}")
            raise errors.already_verified()

    async def _persisted_role(self, account_id: int) -> Role:
        role = await self.store.find_role(account_id)
        if role is None:
            # Token signed for an account with no credential row
            raise errors.AuthError()
        return role

    async def _resolve_phone(self, account_id: int) -> str:
        raw = await self.store.find_account_phone(account_id)
        if not raw:
            raise errors.missing_phone()
        # Shape check happens before any provider call
        phone = valid_phone(raw)
        if phone is None:
            raise errors.invalid_phone()
        return phone

    @staticmethod
    def _raise_if_failed(outcome: ChallengeOutcome, account_id: int, step: str):
        if outcome.failed:
            raise errors.ChallengeError(
                f"{step} failed for account {account_id}: {outcome.detail}"
            )

    async def _commit(self, claims: Claims, previous: Role, new_role: Role,
                      refusal: Callable[[], errors.PreconditionError]) -> Transition:
        await self.store.update_role(claims.account_id, new_role, expected=previous)

        persisted = await self.store.find_role(claims.account_id)
        if persisted is not None and persisted > new_role:
            # Another request moved the account past new_role first
            logger.info(
                f"Account {claims.account_id}: {new_role.value} not written over {persisted.value}"
            )
            raise refusal()
        if persisted != new_role:
            raise errors.IntegrityError(
                f"role write for account {claims.account_id} did not take: "
                f"wrote {new_role.value}, read back "
                f"{persisted.value if persisted else 'nothing'}"
            )

        token = self.tokens.issue(claims.email, new_role, claims.account_id)
        logger.info(f"Account {claims.account_id}: {previous.value} → {new_role.value}")
        return Transition(
            account_id=claims.account_id,
            previous=previous,
            role=new_role,
            token=token,
        )

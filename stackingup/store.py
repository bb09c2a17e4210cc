"""
StackingUp — store.py
─────────────────────────────────────────────────────────────────
Credential Store Adapter: accounts, credentials, phone numbers.

No transactions are exposed to callers. Anything that matters for
authorization is written, then read back by the caller (see
trust.py) before it is trusted.

Usage:
    store = CredentialStore(cfg.DB_PATH)
    cred  = await store.find_credential_by_email("t@test.com")
    await store.update_role(cred.account_id, Role.PHONE_VERIFIED)
    role  = await store.find_role(cred.account_id)
─────────────────────────────────────────────────────────────────
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import aiosqlite

from stackingup.core.database import get_db
from stackingup.core.errors import StoreError, duplicate_email
from stackingup.models.user import Credential, Role

logger = logging.getLogger("stackingup.store")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()

def normalize_email(email: str) -> str:
    return email.strip().lower()


def _to_credential(row) -> Credential:
    try:
        role = Role.parse(row["role"])
    except ValueError as e:
        raise StoreError(f"credential {row['email']} has unknown role: {e}")
    return Credential(
        email=row["email"],
        password=row["password"],
        role=role,
        account_id=row["account_id"],
    )


class CredentialStore:
    """
    Every method opens its own connection.
    Any aiosqlite failure surfaces as StoreError.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path

    # ─── Read ─────────────────────────────────

    async def find_credential_by_email(self, email: str) -> Optional[Credential]:
        try:
            async with get_db(self.db_path) as db:
                async with db.execute(
                    "SELECT * FROM credentials WHERE email = ?", (normalize_email(email),)
                ) as cur:
                    row = await cur.fetchone()
        except aiosqlite.Error as e:
            raise StoreError(f"find_credential_by_email failed: {e}")
        return _to_credential(row) if row else None

    async def find_credential_by_account(self, account_id: int) -> Optional[Credential]:
        try:
            async with get_db(self.db_path) as db:
                async with db.execute(
                    "SELECT * FROM credentials WHERE account_id = ?", (account_id,)
                ) as cur:
                    row = await cur.fetchone()
        except aiosqlite.Error as e:
            raise StoreError(f"find_credential_by_account failed: {e}")
        return _to_credential(row) if row else None

    async def find_account_phone(self, account_id: int) -> Optional[str]:
        try:
            async with get_db(self.db_path) as db:
                async with db.execute(
                    "SELECT phone FROM accounts WHERE id = ?", (account_id,)
                ) as cur:
                    row = await cur.fetchone()
        except aiosqlite.Error as e:
            raise StoreError(f"find_account_phone failed: {e}")
        if not row or not row["phone"]:
            return None
        return row["phone"]

    async def find_role(self, account_id: int) -> Optional[Role]:
        """Read-back of the persisted role. None if no credential row exists."""
        cred = await self.find_credential_by_account(account_id)
        return cred.role if cred else None

    # ─── Write ────────────────────────────────

    async def insert_account(self, name: str, surname: str, phone: Optional[str] = None) -> int:
        try:
            async with get_db(self.db_path) as db:
                cur = await db.execute(
                    "INSERT INTO accounts (name, surname, phone, created_at) VALUES (?,?,?,?)",
                    (name, surname, phone, _now())
                )
                account_id = cur.lastrowid
                await db.commit()
        except aiosqlite.Error as e:
            raise StoreError(f"insert_account failed: {e}")
        return account_id

    async def insert_credential(self, email: str, password_hash: str,
                                account_id: int, role: Role = Role.UNVERIFIED):
        ts = _now()
        try:
            async with get_db(self.db_path) as db:
                await db.execute(
                    """INSERT INTO credentials
                       (email, password, role, account_id, created_at, updated_at)
                       VALUES (?,?,?,?,?,?)""",
                    (normalize_email(email), password_hash, role.value, account_id, ts, ts)
                )
                await db.commit()
        except aiosqlite.IntegrityError as e:
            logger.info(f"Credential insert rejected for account {account_id}: {e}")
            raise duplicate_email()
        except aiosqlite.Error as e:
            raise StoreError(f"insert_credential failed: {e}")

    async def create_account(self, name: str, surname: str, phone: Optional[str],
                             email: str, password_hash: str,
                             role: Role = Role.UNVERIFIED) -> int:
        """
        Account row, then credential row, in one transaction.
        A duplicate email rolls both back.
        """
        ts = _now()
        try:
            async with get_db(self.db_path) as db:
                cur = await db.execute(
                    "INSERT INTO accounts (name, surname, phone, created_at) VALUES (?,?,?,?)",
                    (name, surname, phone, ts)
                )
                account_id = cur.lastrowid
                try:
                    await db.execute(
                        """INSERT INTO credentials
                           (email, password, role, account_id, created_at, updated_at)
                           VALUES (?,?,?,?,?,?)""",
                        (normalize_email(email), password_hash, role.value, account_id, ts, ts)
                    )
                except aiosqlite.IntegrityError as e:
                    await db.rollback()
                    logger.info(f"Registration rejected, account {account_id} rolled back: {e}")
                    raise duplicate_email()
                await db.commit()
        except aiosqlite.Error as e:
            raise StoreError(f"create_account failed: {e}")
        return account_id

    async def update_role(self, account_id: int, new_role: Role,
                          expected: Optional[Role] = None):
        """
        With `expected`, only a row still holding that role is updated.
        A lost race is a no-op here; the caller's read-back sees it.
        """
        sql    = "UPDATE credentials SET role = ?, updated_at = ? WHERE account_id = ?"
        params = [new_role.value, _now(), account_id]
        if expected is not None:
            sql += " AND role = ?"
            params.append(expected.value)
        try:
            async with get_db(self.db_path) as db:
                await db.execute(sql, params)
                await db.commit()
        except aiosqlite.Error as e:
            raise StoreError(f"update_role failed: {e}")

    async def update_password(self, account_id: int, password_hash: str):
        try:
            async with get_db(self.db_path) as db:
                await db.execute(
                    "UPDATE credentials SET password = ?, updated_at = ? WHERE account_id = ?",
                    (password_hash, _now(), account_id)
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise StoreError(f"update_password failed: {e}")

"""
StackingUp — core/database.py
─────────────────────────────────────────────────────────────────
Single place for:
  - DB connection helper
  - One init_all_tables() call on startup

Usage:
    from stackingup.core.database import get_db, init_all_tables

    # In main.py startup:
    await init_all_tables(cfg.DB_PATH)

    # In the store:
    async with get_db(db_path) as db:
        await db.execute(...)
─────────────────────────────────────────────────────────────────
"""

import logging
from contextlib import asynccontextmanager

import aiosqlite

from stackingup.models.user import ACCOUNTS_TABLE, CREDENTIALS_TABLE

logger = logging.getLogger("stackingup.database")


# ─────────────────────────────────────────────
# Connection helper
# ─────────────────────────────────────────────
@asynccontextmanager
async def get_db(db_path: str):
    """
    async with get_db(path) as db:
        await db.execute(...)
    """
    async with aiosqlite.connect(db_path) as db:
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA foreign_keys = ON")
        yield db


# ─────────────────────────────────────────────
# Init: call once on startup
# ─────────────────────────────────────────────
async def init_all_tables(db_path: str):
    """
    Creates all tables in correct order.
    Safe to call multiple times (IF NOT EXISTS).

    accounts first: credentials has a foreign key to it.
    """
    async with aiosqlite.connect(db_path) as db:
        await db.executescript(ACCOUNTS_TABLE)
        logger.info("✓ Accounts table")

        await db.executescript(CREDENTIALS_TABLE)
        logger.info("✓ Credentials table")

        await db.commit()

    logger.info(f"Database ready → {db_path}")

"""Pytest fixtures for StackingUp tests.

Each test gets its own sqlite file, a fast bcrypt cost factor, and a
recording challenge channel in place of Twilio.
"""
from datetime import datetime, timedelta, timezone
from http.cookies import SimpleCookie

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt

from stackingup.challenge import ChallengeOutcome, ChallengeStatus
from stackingup.core.config import Config
from stackingup.core.database import init_all_tables
from stackingup.core.security import TokenService, hash_password
from stackingup.main import create_app
from stackingup.models.user import Role
from stackingup.store import CredentialStore

TEST_SECRET = "test-secret-not-for-production"
TEST_EMAIL = "t@test.com"
TEST_PASSWORD = "Testing123"
VALID_PHONE = "+34 777 77 77 77"


class FakeChallengeProvider:
    """Records every call. Outcomes can be set per test."""

    name = "fake"

    def __init__(self):
        self.started = []
        self.checked = []
        self.start_outcome = ChallengeOutcome(ChallengeStatus.PENDING)
        self.check_outcome = ChallengeOutcome(ChallengeStatus.APPROVED)

    async def start(self, phone):
        self.started.append(phone)
        return self.start_outcome

    async def check(self, phone, code):
        self.checked.append((phone, code))
        return self.check_outcome

    @property
    def calls(self):
        return len(self.started) + len(self.checked)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def cookie_from(response, name: str = "authToken"):
    """Parse a Set-Cookie header from the response. Returns the Morsel or None."""
    header = response.headers.get("set-cookie")
    if not header:
        return None
    jar = SimpleCookie()
    jar.load(header)
    return jar.get(name)


def raw_token(secret: str = TEST_SECRET, **overrides) -> str:
    """Hand-built token, for claims TokenService would never issue."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": "1",
        "email": TEST_EMAIL,
        "role": Role.UNVERIFIED.value,
        "iat": now,
        "exp": now + timedelta(hours=1),
    }
    payload.update(overrides)
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def cfg(tmp_path) -> Config:
    return Config(
        DB_PATH=str(tmp_path / "test.db"),
        JWT_SECRET=TEST_SECRET,
        BCRYPT_ROUNDS=4,
    )


@pytest.fixture
def challenge() -> FakeChallengeProvider:
    return FakeChallengeProvider()


@pytest.fixture
def tokens(cfg) -> TokenService:
    return TokenService(cfg.JWT_SECRET, algorithm=cfg.ALGORITHM, ttl=cfg.session_ttl)


@pytest_asyncio.fixture
async def store(cfg) -> CredentialStore:
    await init_all_tables(cfg.DB_PATH)
    return CredentialStore(cfg.DB_PATH)


@pytest_asyncio.fixture
async def make_account(store):
    """Insert an account + credential directly. Returns the account id."""

    async def _make(email=TEST_EMAIL, password=TEST_PASSWORD,
                    role=Role.UNVERIFIED, phone=VALID_PHONE):
        account_id = await store.insert_account("testname", "testsurname", phone)
        await store.insert_credential(email, hash_password(password, rounds=4), account_id, role)
        return account_id

    return _make


def build_client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest_asyncio.fixture
async def app(cfg, store, challenge):
    return create_app(cfg, store=store, challenge=challenge)


@pytest_asyncio.fixture
async def client(app):
    async with build_client(app) as async_client:
        yield async_client

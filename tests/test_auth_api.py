"""End-to-end tests for register, login, logout and /me."""
import pytest

from stackingup.core.config import Config
from stackingup.core.database import get_db
from stackingup.core.security import TokenService
from stackingup.main import create_app
from stackingup.models.user import Role
from stackingup.store import CredentialStore
from tests.conftest import (
    TEST_EMAIL,
    TEST_PASSWORD,
    TEST_SECRET,
    bearer,
    build_client,
    cookie_from,
)

REGISTRATION = {
    "name": "testname",
    "surname": "testsurname",
    "email": TEST_EMAIL,
    "password": TEST_PASSWORD,
}


# =============================================================================
# Register
# =============================================================================


@pytest.mark.asyncio
async def test_register_then_duplicate(client, store):
    response = await client.post("/api/v1/register", json=REGISTRATION)
    assert response.status_code == 201

    cred = await store.find_credential_by_email(TEST_EMAIL)
    assert cred.role == Role.UNVERIFIED
    assert cred.account_id == response.json()["account_id"]
    assert cred.password != TEST_PASSWORD

    response = await client.post("/api/v1/register", json=REGISTRATION)
    assert response.status_code == 400
    assert response.json()["detail"] == "Email already registered"


@pytest.mark.asyncio
async def test_duplicate_email_is_case_insensitive(client):
    await client.post("/api/v1/register", json=REGISTRATION)

    response = await client.post(
        "/api/v1/register", json={**REGISTRATION, "email": "  T@Test.COM "}
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Email already registered"


@pytest.mark.asyncio
async def test_duplicate_insert_leaves_no_orphan_account(client, store, cfg, monkeypatch):
    await client.post("/api/v1/register", json=REGISTRATION)

    # Both requests passed the lookup before either inserted
    async def lookup_that_lost_the_race(email):
        return None

    monkeypatch.setattr(store, "find_credential_by_email", lookup_that_lost_the_race)

    response = await client.post("/api/v1/register", json=REGISTRATION)

    assert response.status_code == 400
    assert response.json()["code"] == "duplicate_email"
    async with get_db(cfg.DB_PATH) as db:
        async with db.execute("SELECT COUNT(*) FROM accounts") as cur:
            (accounts,) = await cur.fetchone()
    assert accounts == 1


@pytest.mark.asyncio
async def test_register_stores_phone_without_whitespace(client, store):
    response = await client.post(
        "/api/v1/register", json={**REGISTRATION, "phone": "+34 612 34 56 78"}
    )

    assert await store.find_account_phone(response.json()["account_id"]) == "+34612345678"


@pytest.mark.asyncio
@pytest.mark.parametrize("override, code", [
    ({"email": None}, "missing_field"),
    ({"password": ""}, "missing_field"),
    ({"name": "ab"}, "invalid_name"),
    ({"surname": "ab"}, "invalid_name"),
    ({"email": "userinvalid"}, "invalid_email"),
    ({"password": "testing123"}, "weak_password"),
])
async def test_register_validation(client, store, override, code):
    response = await client.post("/api/v1/register", json={**REGISTRATION, **override})

    assert response.status_code == 400
    assert response.json()["code"] == code
    assert await store.find_credential_by_email(TEST_EMAIL) is None


@pytest.mark.asyncio
async def test_unparseable_body_is_400(client):
    response = await client.post(
        "/api/v1/register",
        content="not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid request body"


# =============================================================================
# Login
# =============================================================================


@pytest.mark.asyncio
async def test_login_sets_cookie_and_returns_profile(client, make_account, tokens):
    account_id = await make_account(role=Role.PHONE_VERIFIED)

    response = await client.post(
        "/api/v1/login", json={"email": TEST_EMAIL, "password": TEST_PASSWORD}
    )

    assert response.status_code == 200
    assert response.json() == {
        "email": TEST_EMAIL,
        "role": "PHONE_VERIFIED",
        "account_id": account_id,
    }
    cookie = cookie_from(response)
    assert cookie is not None
    assert cookie["httponly"]
    assert cookie["max-age"] == "86400"
    claims = tokens.validate(cookie.value)
    assert claims.role == Role.PHONE_VERIFIED
    assert claims.account_id == account_id


@pytest.mark.asyncio
async def test_login_email_is_case_insensitive(client, make_account):
    await make_account()

    response = await client.post(
        "/api/v1/login", json={"email": "T@TEST.com", "password": TEST_PASSWORD}
    )

    assert response.status_code == 200
    assert response.json()["email"] == TEST_EMAIL


@pytest.mark.asyncio
async def test_login_does_not_reveal_which_part_failed(client, make_account):
    await make_account()

    wrong_password = await client.post(
        "/api/v1/login", json={"email": TEST_EMAIL, "password": "Wrongpass1"}
    )
    unknown_email = await client.post(
        "/api/v1/login", json={"email": "nobody@test.com", "password": TEST_PASSWORD}
    )

    assert wrong_password.status_code == unknown_email.status_code == 400
    assert wrong_password.json() == unknown_email.json()
    assert wrong_password.json()["detail"] == "Invalid username or password"
    assert cookie_from(wrong_password) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("body, detail", [
    ({"email": TEST_EMAIL}, "Missing email or password"),
    ({"password": TEST_PASSWORD}, "Missing email or password"),
    ({"email": "userinvalid", "password": "test"}, "Invalid email format"),
])
async def test_login_input_errors(client, body, detail):
    response = await client.post("/api/v1/login", json=body)

    assert response.status_code == 400
    assert response.json()["detail"] == detail


@pytest.mark.asyncio
async def test_login_store_failure_is_generic_500(tmp_path, challenge):
    cfg = Config(DB_PATH=str(tmp_path), JWT_SECRET=TEST_SECRET, BCRYPT_ROUNDS=4)
    broken = CredentialStore(str(tmp_path))   # a directory, not a database
    app = create_app(cfg, store=broken, challenge=challenge)

    async with build_client(app) as client:
        response = await client.post(
            "/api/v1/login", json={"email": TEST_EMAIL, "password": TEST_PASSWORD}
        )

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error", "code": "store_failure"}


# =============================================================================
# Logout / me
# =============================================================================


@pytest.mark.asyncio
async def test_logout_clears_cookie_without_a_session(client):
    response = await client.post("/api/v1/logout")

    assert response.status_code == 200
    assert response.json() == {"success": True}
    cookie = cookie_from(response)
    assert cookie.value == ""
    assert cookie["max-age"] == "-1"


@pytest.mark.asyncio
async def test_me_returns_claims(client, tokens):
    token = tokens.issue(TEST_EMAIL, Role.SUBSCRIBED, 7)

    response = await client.get("/api/v1/me", headers=bearer(token))

    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "SUBSCRIBED"
    assert body["account_id"] == 7
    assert body["email"] == TEST_EMAIL


@pytest.mark.asyncio
async def test_me_unauthorized_kinds(client):
    expired = TokenService(TEST_SECRET, ttl=-TokenService(TEST_SECRET).ttl)
    foreign = TokenService("another-secret")

    missing = await client.get("/api/v1/me")
    garbled = await client.get("/api/v1/me", headers=bearer("garbage"))
    stale = await client.get(
        "/api/v1/me", headers=bearer(expired.issue(TEST_EMAIL, Role.UNVERIFIED, 1))
    )
    forged = await client.get(
        "/api/v1/me", headers=bearer(foreign.issue(TEST_EMAIL, Role.SUBSCRIBED, 1))
    )

    assert [r.status_code for r in (missing, garbled, stale, forged)] == [401] * 4
    assert missing.json()["detail"] == "Unauthorized"
    assert garbled.json()["detail"] == "Unauthorized: jwt malformed"
    assert stale.json()["detail"] == "Unauthorized: jwt expired"
    assert forged.json()["detail"] == "Unauthorized: invalid signature"


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["challenge"] == "fake"

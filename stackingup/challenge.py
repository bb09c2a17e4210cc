"""
StackingUp — challenge.py
─────────────────────────────────────────────────────────────────
Challenge Provider Adapter: one-time SMS codes via Twilio Verify.

Nothing is stored locally. The provider is a remote oracle:
    start(phone)        → send a code
    check(phone, code)  → APPROVED or not

Calls never raise for provider trouble. They return a
ChallengeOutcome whose status says what happened, and every call
is bounded by a deadline so a stuck provider can't hang a request.

.env:
    TWILIO_ACCOUNT_SID=ACxxx
    TWILIO_AUTH_TOKEN=xxx
    TWILIO_VERIFY_SID=VAxxx

Without Twilio credentials (dev only) ConsoleChallengeProvider
logs the challenge and accepts DEV_VERIFICATION_CODE.
─────────────────────────────────────────────────────────────────
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

logger = logging.getLogger("stackingup.challenge")

TWILIO_VERIFY_URL = "https://verify.twilio.com/v2"


class ChallengeStatus(str, Enum):
    PENDING  = "pending"
    APPROVED = "approved"
    MISMATCH = "mismatch"
    EXPIRED  = "expired"
    FAILED   = "failed"      # provider / transport error, not the user's fault


@dataclass(frozen=True)
class ChallengeOutcome:
    status: ChallengeStatus
    detail: Optional[str] = None

    @property
    def approved(self) -> bool:
        return self.status == ChallengeStatus.APPROVED

    @property
    def failed(self) -> bool:
        return self.status == ChallengeStatus.FAILED


# ─────────────────────────────────────────────
# Twilio Verify
# ─────────────────────────────────────────────
class TwilioVerifyProvider:
    name = "twilio"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        service_sid: str,
        locale: str = "es",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.account_sid = account_sid
        self.auth_token  = auth_token
        self.service_sid = service_sid
        self.locale      = locale
        self.timeout     = timeout
        self._transport  = transport

    @property
    def _service_url(self) -> str:
        return f"{TWILIO_VERIFY_URL}/Services/{self.service_sid}"

    async def start(self, phone: str) -> ChallengeOutcome:
        """Send an SMS code to `phone` (E.164)."""
        resp = await self._post("Verifications", {
            "To":      phone,
            "Channel": "sms",
            "Locale":  self.locale,
        })
        if isinstance(resp, ChallengeOutcome):
            return resp
        if resp.status_code in (200, 201):
            return ChallengeOutcome(ChallengeStatus.PENDING)
        return ChallengeOutcome(
            ChallengeStatus.FAILED,
            f"start returned HTTP {resp.status_code}: {resp.text[:200]}",
        )

    async def check(self, phone: str, code: str) -> ChallengeOutcome:
        resp = await self._post("VerificationCheck", {"To": phone, "Code": code})
        if isinstance(resp, ChallengeOutcome):
            return resp

        if resp.status_code == 200:
            try:
                status = resp.json().get("status", "")
            except ValueError:
                return ChallengeOutcome(ChallengeStatus.FAILED, "check returned invalid JSON")
            if status == "approved":
                return ChallengeOutcome(ChallengeStatus.APPROVED)
            if status in ("canceled", "expired"):
                return ChallengeOutcome(ChallengeStatus.EXPIRED, status)
            return ChallengeOutcome(ChallengeStatus.MISMATCH, status or None)

        # 404 = no pending verification for this number (expired or already used)
        if resp.status_code == 404:
            return ChallengeOutcome(ChallengeStatus.EXPIRED, "no pending verification")
        if resp.status_code in (401, 403, 429) or resp.status_code >= 500:
            return ChallengeOutcome(
                ChallengeStatus.FAILED,
                f"check returned HTTP {resp.status_code}: {resp.text[:200]}",
            )
        return ChallengeOutcome(ChallengeStatus.MISMATCH, f"HTTP {resp.status_code}")

    async def _post(self, path: str, data: dict):
        """Returns the httpx.Response, or a FAILED outcome if the call never completed."""
        try:
            return await asyncio.wait_for(self._send(path, data), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Twilio {path} timed out after {self.timeout}s")
            return ChallengeOutcome(ChallengeStatus.FAILED, f"{path} timed out")
        except httpx.HTTPError as e:
            logger.warning(f"Twilio {path} transport error: {e}")
            return ChallengeOutcome(ChallengeStatus.FAILED, f"{path} transport error: {e}")

    async def _send(self, path: str, data: dict) -> httpx.Response:
        async with httpx.AsyncClient(
            auth=(self.account_sid, self.auth_token),
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            return await client.post(f"{self._service_url}/{path}", data=data)


# ─────────────────────────────────────────────
# Dev channel
# ─────────────────────────────────────────────
class ConsoleChallengeProvider:
    """Logs challenges instead of sending them. Never used in production."""

    name = "console"

    def __init__(self, dev_code: str):
        self.dev_code = dev_code

    async def start(self, phone: str) -> ChallengeOutcome:
        logger.warning(f"[DEV] Verification code for {phone}: {self.dev_code}")
        return ChallengeOutcome(ChallengeStatus.PENDING)

    async def check(self, phone: str, code: str) -> ChallengeOutcome:
        if code == self.dev_code:
            return ChallengeOutcome(ChallengeStatus.APPROVED)
        return ChallengeOutcome(ChallengeStatus.MISMATCH)


def build_challenge_provider(cfg):
    """Pick the channel for this process. Production requires Twilio."""
    if cfg.twilio_ready:
        return TwilioVerifyProvider(
            cfg.TWILIO_ACCOUNT_SID,
            cfg.TWILIO_AUTH_TOKEN,
            cfg.TWILIO_VERIFY_SID,
            locale=cfg.VERIFY_LOCALE,
            timeout=cfg.CHALLENGE_TIMEOUT_SEC,
        )
    if cfg.is_production:
        raise RuntimeError("TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_VERIFY_SID are required in production")
    return ConsoleChallengeProvider(cfg.DEV_VERIFICATION_CODE)

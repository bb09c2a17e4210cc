"""
StackingUp — account.py
─────────────────────────────────────────────────────────────────
Trust-level routes. All require a valid session token.

ENDPOINTS:
  POST /api/v1/verify         → send SMS code        (UNVERIFIED)      201
  POST /api/v1/verify/check   → check code, advance  (UNVERIFIED)      200
  POST /api/v1/subscribe      → advance              (PHONE_VERIFIED)  200
  POST /api/v1/password       → change password      (any role)        200

After a role change the response carries the replacement token and
sets it as the authToken cookie. With VERIFY_SESSION_POLICY=logout
the cookie is cleared instead and the client has to log in again.
─────────────────────────────────────────────────────────────────
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from stackingup.core.config import POLICY_LOGOUT
from stackingup.core.security import (
    Claims, clear_session_cookie, get_current_claims, set_session_cookie,
)
from stackingup.trust import Transition, TrustLevelMachine

logger = logging.getLogger("stackingup.account")

router = APIRouter(prefix="/api/v1", tags=["account"])


def get_trust(request: Request) -> TrustLevelMachine:
    return request.app.state.trust


class CheckCodeRequest(BaseModel):
    code: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    old_password: Optional[str] = None
    new_password: Optional[str] = None


def _transition_response(transition: Transition, request: Request, response: Response) -> dict:
    cfg = request.app.state.cfg
    if cfg.VERIFY_SESSION_POLICY == POLICY_LOGOUT:
        clear_session_cookie(response, cfg)
        return {"success": True, "role": transition.role.value, "relogin": True}

    set_session_cookie(response, transition.token, cfg)
    return {"success": True, "role": transition.role.value, "token": transition.token}


# ── Phone verification ────────────────────────
@router.post("/verify", status_code=201)
async def start_verification(claims: Claims = Depends(get_current_claims),
                             trust: TrustLevelMachine = Depends(get_trust)):
    await trust.start_verification(claims)
    return {"success": True, "status": "pending", "message": "Verification code sent"}


@router.post("/verify/check")
async def check_verification(request: Request, response: Response,
                             payload: Optional[CheckCodeRequest] = None,
                             claims: Claims = Depends(get_current_claims),
                             trust: TrustLevelMachine = Depends(get_trust)):
    code = payload.code if payload else None
    transition = await trust.check_verification(claims, code)
    return _transition_response(transition, request, response)


# ── Subscription ──────────────────────────────
@router.post("/subscribe")
async def subscribe(request: Request, response: Response,
                    claims: Claims = Depends(get_current_claims),
                    trust: TrustLevelMachine = Depends(get_trust)):
    transition = await trust.subscribe(claims)
    return _transition_response(transition, request, response)


# ── Password ──────────────────────────────────
@router.post("/password")
async def change_password(payload: ChangePasswordRequest,
                          claims: Claims = Depends(get_current_claims),
                          trust: TrustLevelMachine = Depends(get_trust)):
    await trust.change_password(claims, payload.old_password, payload.new_password)
    return {"success": True}

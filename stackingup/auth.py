"""
StackingUp — auth.py
─────────────────────────────────────────────────────────────────
Session routes.

ENDPOINTS:
  POST /api/v1/register   → create account (role UNVERIFIED)       201
  POST /api/v1/login      → set authToken cookie + profile body    200
  POST /api/v1/logout     → clear authToken cookie                 200
  GET  /api/v1/me         → claims of the presented token          200
─────────────────────────────────────────────────────────────────
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from stackingup.core.security import (
    Claims, clear_session_cookie, get_current_claims, set_session_cookie,
)
from stackingup.sessions import SessionService

logger = logging.getLogger("stackingup.auth")

router = APIRouter(prefix="/api/v1", tags=["auth"])


def get_sessions(request: Request) -> SessionService:
    return request.app.state.sessions


class RegisterRequest(BaseModel):
    name:     Optional[str] = None
    surname:  Optional[str] = None
    email:    Optional[str] = None
    password: Optional[str] = None
    phone:    Optional[str] = None


class LoginRequest(BaseModel):
    email:    Optional[str] = None
    password: Optional[str] = None


# ── Register ──────────────────────────────────
@router.post("/register", status_code=201)
async def register(payload: RegisterRequest, sessions: SessionService = Depends(get_sessions)):
    account_id = await sessions.register(
        payload.name, payload.surname, payload.email, payload.password, payload.phone
    )
    return {"success": True, "account_id": account_id}


# ── Login ─────────────────────────────────────
@router.post("/login")
async def login(payload: LoginRequest, request: Request, response: Response,
                sessions: SessionService = Depends(get_sessions)):
    result = await sessions.login(payload.email, payload.password)
    set_session_cookie(response, result.token, request.app.state.cfg)
    return result.profile()


# ── Logout ────────────────────────────────────
@router.post("/logout")
async def logout(request: Request, response: Response):
    clear_session_cookie(response, request.app.state.cfg)
    return {"success": True}


# ── Me ────────────────────────────────────────
@router.get("/me")
async def me(claims: Claims = Depends(get_current_claims)):
    return {
        "email":      claims.email,
        "role":       claims.role.value,
        "account_id": claims.account_id,
        "expires_at": claims.expires_at.isoformat(),
    }

"""
StackingUp — main.py
─────────────────────────────────────────────────────────────────
Central entry point. All routers mount here.

Start server:
    uvicorn stackingup.main:app --reload --port 4000

File map:
    auth.py       → /api/v1/register, login, logout, me
    account.py    → /api/v1/verify, verify/check, subscribe, password
    trust.py      → service only (role state machine)
    sessions.py   → service only (register / login)
    store.py      → service only (aiosqlite adapter)
    challenge.py  → service only (Twilio Verify)
─────────────────────────────────────────────────────────────────
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stackingup import __version__
from stackingup.account import router as account_router
from stackingup.auth import router as auth_router
from stackingup.challenge import build_challenge_provider
from stackingup.core.config import Config, load_config
from stackingup.core.database import init_all_tables
from stackingup.core.errors import INTERNAL_ERROR_MESSAGE, ErrorKind, ServiceError
from stackingup.core.security import TokenService
from stackingup.sessions import SessionService
from stackingup.store import CredentialStore
from stackingup.trust import TrustLevelMachine

logger = logging.getLogger("stackingup.main")


def configure_logging(cfg: Config):
    logging.basicConfig(
        level   = cfg.LOG_LEVEL,
        format  = "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt = "%Y-%m-%d %H:%M:%S",
    )


# ─────────────────────────────────────────────
# Startup / Shutdown
# ─────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    cfg = app.state.cfg
    logger.info(f"🚀 StackingUp starting {cfg!r}")

    if cfg.uses_default_secret:
        logger.warning("⚠️  Using default JWT_SECRET — set JWT_SECRET before going live")

    await init_all_tables(cfg.DB_PATH)
    logger.info(f"✓ Challenge channel: {app.state.challenge.name}")

    yield  # App runs here

    logger.info("StackingUp shutting down.")


# ─────────────────────────────────────────────
# Error handlers
# ─────────────────────────────────────────────
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.is_fault:
        logger.error(f"{request.method} {request.url.path} → {exc.kind.value}: {exc.detail}")
    else:
        logger.info(f"{request.method} {request.url.path} → {exc.status_code} {exc.kind.value}")
    return JSONResponse(
        status_code = exc.status_code,
        content     = {"detail": exc.message, "code": exc.kind.value},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info(f"{request.method} {request.url.path} → invalid body: {exc.errors()}")
    return JSONResponse(
        status_code = 400,
        content     = {"detail": "Invalid request body", "code": ErrorKind.INVALID_BODY.value},
    )


async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error: {exc}", exc_info=True)
    return JSONResponse(
        status_code = 500,
        content     = {"detail": INTERNAL_ERROR_MESSAGE},
    )


# ─────────────────────────────────────────────
# App
# ─────────────────────────────────────────────
def create_app(cfg: Optional[Config] = None, store: Optional[CredentialStore] = None,
               challenge=None) -> FastAPI:
    """
    Build the application. Every component gets the same Config.
    `store` and `challenge` can be swapped (tests, alternative channels).
    """
    cfg = cfg or load_config()
    configure_logging(cfg)

    app = FastAPI(
        title     = "StackingUp Auth",
        version   = __version__,
        docs_url  = "/docs"  if not cfg.is_production else None,  # hide in prod
        redoc_url = "/redoc" if not cfg.is_production else None,
        lifespan  = lifespan,
    )

    tokens    = TokenService(cfg.JWT_SECRET, algorithm=cfg.ALGORITHM, ttl=cfg.session_ttl)
    store     = store or CredentialStore(cfg.DB_PATH)
    challenge = challenge or build_challenge_provider(cfg)

    app.state.cfg       = cfg
    app.state.tokens    = tokens
    app.state.store     = store
    app.state.challenge = challenge
    app.state.sessions  = SessionService(store, tokens, bcrypt_rounds=cfg.BCRYPT_ROUNDS)
    app.state.trust     = TrustLevelMachine(store, challenge, tokens, bcrypt_rounds=cfg.BCRYPT_ROUNDS)

    # ── CORS ──────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins     = [cfg.FRONTEND_URL],
        allow_credentials = True,
        allow_methods     = ["*"],
        allow_headers     = ["*"],
    )

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(auth_router)
    app.include_router(account_router)

    @app.get("/health", tags=["system"])
    async def health():
        """Quick ping — load balancer / uptime monitor uses this."""
        return {
            "status":    "ok",
            "app":       "StackingUp Auth",
            "version":   __version__,
            "env":       cfg.ENV,
            "challenge": challenge.name,
        }

    return app


app = create_app()


# ─────────────────────────────────────────────
# Run
# ─────────────────────────────────────────────
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("stackingup.main:app", host="0.0.0.0", port=4000, reload=True)

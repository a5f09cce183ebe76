from pathlib import Path

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from guruchat.config import settings
from guruchat.db import init_db
from guruchat.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
    general_exception_handler
)
from guruchat.middleware.auth_gate import AuthGateMiddleware
from guruchat.middleware.request_id import RequestIDMiddleware
from guruchat.middleware.security_headers import SecurityHeadersMiddleware
from guruchat.rate_limit import limiter, rate_limit_exceeded_handler
from guruchat.routers import auth, chat, chats, gurus, pages
from guruchat.utils.logging import configure_logging

configure_logging(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"

if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        integrations=[
            FastApiIntegration(),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        environment=settings.ENVIRONMENT,
    )
    logger.info("Sentry error tracking initialized")


app = FastAPI(
    title="GuruChat",
    description="Chat with AI personas; conversations are kept per user and guru.",
    version="1.0.0"
)

# Add rate limiting state
app.state.limiter = limiter

# Register exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_exception_handler(Exception, general_exception_handler)

# Last added runs first: headers and request ids wrap CORS, which wraps the gate.
app.add_middleware(AuthGateMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,
)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.on_event("startup")
async def startup_event():
    """Initialize application on startup"""
    logger.info("Starting GuruChat...")
    try:
        init_db()
        logger.info("Database tables ready")
    except Exception as e:
        # The engine retries on the first request that needs it
        logger.error(f"Database initialisation failed: {e}")


@app.get("/health")
async def health():
    return {"status": "ok"}


app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

app.include_router(auth.router)
app.include_router(gurus.router)
app.include_router(chat.router)
app.include_router(chats.router)
app.include_router(pages.router)

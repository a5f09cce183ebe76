"""
Edge gatekeeper: classifies every request by session state before routing.

Signed-in users are sent away from the login/register pages; anonymous users
may only reach those pages and their API endpoints. Everything else gets a
redirect to /login (pages) or a 401 (API calls, which cannot follow a
redirect to an HTML form).
"""
import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from guruchat.auth import verify_session_token
from guruchat.exceptions import AppException, AuthenticationError
from guruchat.utils.cookie_auth import get_token_from_cookie

logger = logging.getLogger(__name__)

EXCLUDED_PREFIXES = ("/static/", "/images/", "/favicon.ico", "/health", "/docs", "/redoc", "/openapi.json")
AUTH_PAGES = ("/login", "/register")
PUBLIC_API = ("/api/auth/login", "/api/auth/register")


def is_excluded(path: str) -> bool:
    return path.startswith(EXCLUDED_PREFIXES)


def is_auth_page(path: str) -> bool:
    return path.startswith(AUTH_PAGES)


def is_public_api(path: str) -> bool:
    return path.startswith(PUBLIC_API)


def _error_response(exc: AppException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error_code": exc.error_code, "message": exc.message, "details": exc.details},
    )


class AuthGateMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if request.method == "OPTIONS" or is_excluded(path):
            return await call_next(request)

        token = get_token_from_cookie(request)
        authenticated = False
        if token:
            try:
                verify_session_token(token)
                authenticated = True
            except AuthenticationError:
                authenticated = False
            except AppException as e:
                # Missing signing secret: nothing can be verified
                return _error_response(e)

        if authenticated:
            if is_auth_page(path):
                return RedirectResponse(url="/", status_code=status.HTTP_307_TEMPORARY_REDIRECT)
            return await call_next(request)

        if is_auth_page(path) or is_public_api(path):
            return await call_next(request)

        if path.startswith("/api/"):
            logger.info("Rejected unauthenticated API request", extra={"path": path, "method": request.method})
            return _error_response(AuthenticationError("Unauthorized: Missing or invalid session"))

        return RedirectResponse(url="/login", status_code=status.HTTP_307_TEMPORARY_REDIRECT)

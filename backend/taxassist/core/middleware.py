"""
Middleware configuration.

- SessionGateMiddleware: page-request gate. Converts a `?token=` one-time
  login token into a session cookie, otherwise requires a valid session
  cookie and redirects unauthenticated visitors.
- setup_exception_handlers: maps the AppError taxonomy to generic JSON errors.
"""
import logging
import time
from typing import Callable, Optional
from urllib.parse import urlencode

import jwt
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ..config import settings
from ..services.token_bridge import attach_session_cookie
from .errors import AppError
from .security import decode_session_token

logger = logging.getLogger("uvicorn.error")

LOGIN_PATH = "/login"

# Paths the gate never intercepts (API routes do their own auth)
PUBLIC_PATHS = ("/api", "/healthz", "/docs", "/redoc", "/openapi.json", "/favicon.ico", LOGIN_PATH, "/register")


def _is_public(path: str) -> bool:
    return any(path == p or path.startswith(p + "/") for p in PUBLIC_PATHS)


def unauthenticated_redirect_target() -> str:
    if settings.auth_redirect_mode == "external":
        return settings.dashboard_url
    return LOGIN_PATH


def _seconds_until_expiry(claims: dict) -> Optional[int]:
    """Cookie lifetime matching the credential's own `exp` (None: default TTL)."""
    exp = claims.get("exp")
    if exp is None:
        return None
    return max(0, int(exp - time.time()))


class SessionGateMiddleware(BaseHTTPMiddleware):
    """
    Gate for page requests (GET/HEAD on non-API paths).

    1. `?token=...` present: verify it (signature + expiry, no DB lookup).
       Valid -> redirect to the same path without the token, with the token
       set as the session cookie. Invalid -> redirect to the login page.
    2. Otherwise a valid session cookie lets the request through; missing or
       invalid cookies redirect to the login page or the external dashboard
       depending on AUTH_REDIRECT_MODE.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if request.method not in ("GET", "HEAD") or _is_public(path):
            return await call_next(request)

        token = request.query_params.get("token")
        if token:
            try:
                claims = decode_session_token(token)
            except jwt.InvalidTokenError as e:
                logger.info("[gate] rejected ?token on %s: %r", path, e)
                return RedirectResponse(LOGIN_PATH, status_code=302)

            kept = [(k, v) for k, v in request.query_params.multi_items() if k != "token"]
            target = path + ("?" + urlencode(kept) if kept else "")
            response = RedirectResponse(target, status_code=302)
            attach_session_cookie(response, token, max_age=_seconds_until_expiry(claims))
            return response

        cookie = request.cookies.get(settings.session_cookie_name)
        if cookie:
            try:
                decode_session_token(cookie)
                return await call_next(request)
            except jwt.InvalidTokenError:
                logger.debug("[gate] stale session cookie on %s", path)

        return RedirectResponse(unauthenticated_redirect_target(), status_code=302)


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure global exception handlers for the FastAPI application."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        """Log the detail, return only the generic message."""
        if exc.status_code >= 500:
            logger.error("[%s] %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.detail)
        else:
            logger.info("[%s] %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.detail)
        headers = None
        if exc.status_code == 401:
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=headers)

"""
Session Token Bridge

Exchanges a short-lived one-time login token issued by the external
dashboard (e.g. from an emailed link) for this application's own session
credential, and attaches that credential to the response as a cookie.
"""
import logging
from typing import Optional, Tuple

import jwt
from starlette.responses import Response

from ..config import settings
from ..core.errors import AuthError
from ..core.security import (
    SESSION_TTL_MINUTES,
    TokenReplayLedger,
    create_session_token,
    decode_one_time_token,
    token_replay_ledger,
)
from ..models.user import User

logger = logging.getLogger("uvicorn.error")

INVALID_TOKEN = "Invalid token"


def attach_session_cookie(response: Response, token: str, max_age: Optional[int] = None) -> None:
    """Set the single session cookie (http-only, same-site=lax, whole site)."""
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=max_age if max_age is not None else SESSION_TTL_MINUTES * 60,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(settings.session_cookie_name, path="/")


class TokenBridge:
    def __init__(self, replay_ledger: TokenReplayLedger = token_replay_ledger):
        self._replay_ledger = replay_ledger

    async def exchange(self, one_time_token: Optional[str]) -> Tuple[str, User]:
        """
        Verify a one-time login token and mint a session credential for its user.

        Every failure raises AuthError with the same public message, so the
        client cannot tell which check failed.

        Returns:
            (session_token, user)
        """
        if not one_time_token:
            raise AuthError("missing one-time token", public_message=INVALID_TOKEN)

        try:
            claims = decode_one_time_token(one_time_token)
        except jwt.InvalidTokenError as e:
            raise AuthError(f"one-time token rejected: {e!r}", public_message=INVALID_TOKEN) from e

        email = claims.get("email") if isinstance(claims, dict) else None
        if not email:
            raise AuthError("one-time token payload has no email claim", public_message=INVALID_TOKEN)

        user = await User.get_or_none(email=email)
        if user is None:
            raise AuthError(f"no user for one-time token email {email}", public_message=INVALID_TOKEN)

        if settings.one_time_token_single_use and not self._replay_ledger.claim(
            one_time_token, float(claims["exp"])
        ):
            raise AuthError(f"one-time token replayed for {email}", public_message=INVALID_TOKEN)

        session_token = create_session_token(str(user.id), user.email, user.name, user.language)
        logger.info("[auth] token-login exchanged for user=%s", user.id)
        return session_token, user


# Global singleton
token_bridge = TokenBridge()

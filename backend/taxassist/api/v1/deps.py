from fastapi import Header, Request
from tortoise.exceptions import BaseORMException
from taxassist.config import settings
from taxassist.core.errors import AuthError
from taxassist.core.security import decode_session_token
from taxassist.models.user import User


async def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None),
):
    """
    FastAPI dependency to get the current authenticated user.

    The session credential is read from either:
    1. Authorization header (Bearer token) - preferred method
    2. HttpOnly session cookie - fallback method

    Credentials minted here carry the user id in `sub`; tokens forwarded by
    the external dashboard may carry `id` or only `email` instead.

    Raises:
        AuthError (401): no credential, invalid/expired credential, or unknown user.
        The client always gets the same generic message.
    """
    token = None
    # 1) Prioritize Authorization: Bearer xxx
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
    # 2) Secondly HttpOnly Cookie
    if not token:
        token = request.cookies.get(settings.session_cookie_name)

    if not token:
        raise AuthError("no session credential")

    try:
        payload = decode_session_token(token)
    except Exception as e:
        raise AuthError(f"invalid session credential: {e!r}") from e

    user_id = payload.get("sub") or payload.get("id")
    try:
        if user_id:
            user = await User.get_or_none(id=user_id)
        elif payload.get("email"):
            user = await User.get_or_none(email=payload["email"])
        else:
            user = None
    except (ValueError, BaseORMException) as e:
        # e.g. an id claim that is not a UUID
        raise AuthError(f"unusable session claims: {e!r}") from e
    if not user:
        raise AuthError("session credential does not match a user")
    return user

# taxassist/api/v1/routers/auth.py
import logging

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import RedirectResponse
from tortoise.exceptions import BaseORMException, IntegrityError
from tortoise.transactions import in_transaction

from taxassist.api.v1.deps import get_current_user
from taxassist.config import settings
from taxassist.core.errors import AuthError, PersistenceError, ValidationError
from taxassist.core.security import create_session_token, hash_password, verify_password
from taxassist.models.subscription import Subscription
from taxassist.models.user import JOB_TITLES, User
from taxassist.schemas.auth import LoginRequest, RegisterIn, TokenLoginIn, UserOut
from taxassist.services.token_bridge import attach_session_cookie, clear_session_cookie, token_bridge

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/auth", tags=["auth"])


def _user_to_dict(u: User) -> dict:
    return {
        "id": str(u.id),
        "name": u.name,
        "email": u.email,
        "jobTitle": u.job_title,
        "language": u.language,
    }


@router.post("/register")
async def register(body: RegisterIn):
    """
    Register a new user account.

    All of name, email, password and jobTitle are required; jobTitle must be
    one of the fixed job titles. When DEFAULT_CALL_SECONDS is configured the
    account starts with that call-seconds quota, otherwise it has none.

    Returns:
        dict: {id, name, email, jobTitle}

    Errors:
        400: missing fields, unknown job title, email already registered
        500: the account could not be stored
    """
    # Basic validation, avoid pydantic error becoming 422
    if not body.name or not body.email or not body.password or not body.jobTitle:
        raise ValidationError("register: missing fields", public_message="Missing required fields")
    if body.jobTitle not in JOB_TITLES:
        raise ValidationError(f"register: job title {body.jobTitle!r}", public_message="Invalid job title")
    email = body.email.strip().lower()
    if await User.get_or_none(email=email):
        raise ValidationError(f"register: duplicate {email}", public_message="Email already registered")

    try:
        async with in_transaction():
            u = await User.create(
                name=body.name.strip(),
                email=email,
                password_hash=hash_password(body.password),
                job_title=body.jobTitle,
            )
            if settings.default_call_seconds is not None:
                await Subscription.create(user=u, call_seconds=settings.default_call_seconds)
    except IntegrityError as e:
        # Lost a race against a concurrent registration with the same email
        raise ValidationError(repr(e), public_message="Email already registered") from e
    except BaseORMException as e:
        logger.error("[auth] register failed for %s: %r", email, e)
        raise PersistenceError(repr(e), public_message="Failed to register user") from e

    logger.info("[auth] registered user=%s", u.id)
    return {"id": str(u.id), "name": u.name, "email": u.email, "jobTitle": u.job_title}


@router.post("/login")
async def login(payload: LoginRequest, response: Response):
    """
    Authenticate with email and password.

    The session credential is returned in the body and also set as the
    HttpOnly session cookie.

    Errors:
        401: unknown email or wrong password (same message for both)
    """
    user = await User.get_or_none(email=payload.email.strip().lower())
    if not user or not verify_password(payload.password, user.password_hash):
        raise AuthError(f"login failed for {payload.email}", public_message="Incorrect email or password")
    token = create_session_token(str(user.id), user.email, user.name, user.language)
    attach_session_cookie(response, token)
    return {"success": True, "user": _user_to_dict(user), "accessToken": token}


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)):
    """Profile of the currently authenticated user."""
    return _user_to_dict(user)


@router.post("/token-login")
async def token_login(body: TokenLoginIn, response: Response):
    """
    Exchange an external one-time login token for a session cookie.

    Returns:
        dict: {"success": True} with the session cookie set

    Errors:
        401 {"error": "Invalid token"}: bad signature, expired, no email claim,
        unknown user, or (single-use mode) already exchanged. No cookie is set.
    """
    session_token, _ = await token_bridge.exchange(body.token)
    attach_session_cookie(response, session_token)
    return {"success": True}


@router.post("/logout")
async def logout():
    """
    Clear the session cookie and send the browser back to the external dashboard.

    The credential itself stays valid until it expires.
    """
    response = RedirectResponse(settings.dashboard_url, status_code=status.HTTP_303_SEE_OTHER)
    clear_session_cookie(response)
    return response

# taxassist/core/security.py
"""
Security module for authentication and authorization.
Handles password hashing, session credential (JWT) creation/validation,
verification of externally issued one-time login tokens, and the replay
ledger for single-use tokens.
"""
import os
import time
import hashlib
import datetime as dt
from typing import Dict, Optional

import jwt  # PyJWT
from passlib.context import CryptContext
from dotenv import load_dotenv
from pathlib import Path

# Load environment variables from project root
ENV_PATH = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(dotenv_path=ENV_PATH)

# Password hashing context (Argon2 only)
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
)

# JWT configuration
# Shared secret: signs our own session credentials and verifies one-time login tokens
JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret")
SESSION_TTL_MINUTES = int(os.getenv("SESSION_TTL_MINUTES", "60"))
JWT_ALG = "HS256"


def hash_password(plain: str) -> str:
    """
    Hash a plain text password using Argon2.

    Args:
        plain: Plain text password to hash

    Returns:
        Hashed password string (safe to store in database)
    """
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """
    Verify a plain text password against a hashed password.

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain, hashed)


def create_session_token(
    user_id: str,
    email: str,
    name: Optional[str] = None,
    language: Optional[str] = None,
) -> str:
    """
    Create the application's own session credential.

    Token payload:
        - sub: user id
        - email, name, language: profile claims read by the frontend
        - iat / exp: issued at / expiry (SESSION_TTL_MINUTES)
    """
    now = dt.datetime.now(dt.timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "name": name,
        "language": language,
        "iat": now,
        "exp": now + dt.timedelta(minutes=SESSION_TTL_MINUTES),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALG)


def decode_session_token(token: str) -> dict:
    """
    Decode and validate a session credential.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or malformed
    """
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG])


def decode_one_time_token(token: str) -> dict:
    """
    Verify an externally issued one-time login token.

    Unlike session credentials these must always carry an expiry.

    Raises:
        jwt.InvalidTokenError (or a subclass) on bad signature, expiry or missing exp
    """
    return jwt.decode(
        token,
        JWT_SECRET,
        algorithms=[JWT_ALG],
        options={"require": ["exp"]},
    )


class TokenReplayLedger:
    """
    Remembers one-time tokens that were already exchanged.

    Entries are keyed by sha256 of the raw token and kept until the token's
    own expiry, after which a replay would fail signature verification anyway.
    Process-local: a multi-worker deployment needs a shared store.
    """

    def __init__(self):
        self._seen: Dict[str, float] = {}

    @staticmethod
    def _digest(token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    def _prune(self, now: float) -> None:
        expired = [k for k, exp in self._seen.items() if exp <= now]
        for k in expired:
            del self._seen[k]

    def claim(self, token: str, expires_at: float) -> bool:
        """Record the token; False if it was already claimed."""
        now = time.time()
        self._prune(now)
        key = self._digest(token)
        if key in self._seen:
            return False
        self._seen[key] = expires_at
        return True

    def clear(self) -> None:
        self._seen.clear()


# Global ledger instance
token_replay_ledger = TokenReplayLedger()

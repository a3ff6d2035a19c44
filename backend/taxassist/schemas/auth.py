# taxassist/schemas/auth.py
"""
Pydantic schemas for authentication endpoints.
Fields are optional where the route itself reports missing values as a 400
(or, for token-login, as a generic 401) instead of a 422.
"""
from pydantic import BaseModel
from typing import Optional


class RegisterIn(BaseModel):
    """Request model for account registration."""
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    jobTitle: Optional[str] = None


class LoginRequest(BaseModel):
    """Request model for email/password login."""
    email: str
    password: str


class TokenLoginIn(BaseModel):
    """Request model for one-time token login."""
    token: Optional[str] = None


class UserOut(BaseModel):
    """
    User information returned by auth endpoints.
    Contains profile details only, never the password hash.
    """
    id: str
    name: str
    email: str
    jobTitle: str
    language: Optional[str] = None

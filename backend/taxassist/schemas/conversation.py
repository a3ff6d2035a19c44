# taxassist/schemas/conversation.py
"""
Pydantic schemas for conversation, quota and summary endpoints.
"""
import datetime as dt
from pydantic import BaseModel, Field
from typing import Any, Optional


class SaveConversationIn(BaseModel):
    """
    Request model for saving a finished conversation.
    `transcript` and `duration` are untyped so that a missing or mistyped value is reported
    by the route as a 400 rather than a schema error.
    """
    transcript: Any = None
    summary: Optional[str] = None
    duration: Any = None  # seconds, validated by the store
    startTime: Optional[dt.datetime] = None
    endTime: Optional[dt.datetime] = None
    status: Optional[str] = None


class TickIn(BaseModel):
    """Request model for a quota tick; 0 only reads the balance."""
    tickSeconds: int = Field(default=1, ge=0)


class QuotaOut(BaseModel):
    """Current balance and the warning level derived from it."""
    remaining: Optional[int] = None  # None when no quota is configured
    level: str
    minStartSeconds: int
    upgradeUrl: str


class SummarizeIn(BaseModel):
    transcript: Optional[str] = None


class SummarizeOut(BaseModel):
    summary: str

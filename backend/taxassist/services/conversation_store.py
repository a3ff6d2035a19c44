"""
Conversation Record Store

Persists finished conversations and lists them back for their owner.
Saving never consults or decrements the quota ledger for permission: a
conversation the user already had is always kept, the quota state is only
reported alongside it.
"""
import datetime as dt
import logging
import math
from typing import Any, List, Optional

from tortoise.exceptions import BaseORMException

from ..core.errors import NotFoundError, PersistenceError, ValidationError
from ..models.conversation import NO_SUMMARY, STATUSES, Conversation
from ..models.user import User

logger = logging.getLogger("uvicorn.error")


def _iso(value: Optional[dt.datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def conversation_to_dict(c: Conversation) -> dict:
    return {
        "id": str(c.id),
        "transcript": c.transcript,
        "summary": c.summary,
        "duration": c.duration,
        "status": c.status,
        "startTime": _iso(c.start_time),
        "endTime": _iso(c.end_time),
        "createdAt": _iso(c.created_at),
    }


async def save_conversation(
    user: User,
    transcript: Any,
    summary: Optional[str] = None,
    duration: Any = None,
    start_time: Optional[dt.datetime] = None,
    end_time: Optional[dt.datetime] = None,
    status: Optional[str] = None,
) -> Conversation:
    """
    Validate and persist one conversation.

    Raises:
        ValidationError: transcript missing/not text/blank, duration not a non-negative number, unknown status
        PersistenceError: the database write failed
    """
    if not transcript or not isinstance(transcript, str):
        raise ValidationError("transcript missing or not a string", public_message="Invalid transcript")
    if not transcript.strip():
        raise ValidationError("transcript is blank", public_message="Empty transcript")
    if duration is not None:
        if (isinstance(duration, bool) or not isinstance(duration, (int, float))
                or not math.isfinite(duration) or duration < 0):
            raise ValidationError(f"bad duration {duration!r}", public_message="Invalid duration")
        duration = int(duration)
    status = status or "completed"
    if status not in STATUSES:
        raise ValidationError(f"unknown status {status!r}", public_message="Invalid status")

    now = dt.datetime.now(dt.timezone.utc)
    try:
        return await Conversation.create(
            user=user,
            transcript=transcript,
            summary=(summary or "").strip() or NO_SUMMARY,
            duration=duration or 0,
            start_time=start_time or now,
            end_time=end_time or now,
            status=status,
        )
    except BaseORMException as e:
        logger.error("[conversations] save failed for user=%s: %r", user.id, e)
        raise PersistenceError(repr(e), public_message="Failed to save conversation") from e


async def list_conversations(user: User, offset: int = 0, limit: int = 100) -> List[Conversation]:
    """Caller's conversations, most recent first."""
    return await (
        Conversation.filter(user=user)
        .order_by("-created_at")
        .offset(offset)
        .limit(limit)
    )


async def get_conversation(user: User, cid: str) -> Conversation:
    c = await Conversation.get_or_none(id=cid, user=user)
    if c is None:
        raise NotFoundError(f"conversation {cid} not found for user {user.id}",
                            public_message="Conversation not found")
    return c

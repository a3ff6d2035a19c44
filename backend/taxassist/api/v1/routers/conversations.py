import logging
import uuid

from fastapi import APIRouter, Depends, Query

from taxassist.api.v1.deps import get_current_user
from taxassist.config import settings
from taxassist.core.quota import MIN_CALL_START_SECONDS, quota_level
from taxassist.models.user import User
from taxassist.schemas.conversation import QuotaOut, SaveConversationIn, TickIn
from taxassist.services import conversation_store
from taxassist.services.quota_ledger import quota_ledger

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/conversations", tags=["conversations"])


# ===== Routes =====
@router.post("", response_model=dict)
async def save_conversation(body: SaveConversationIn, user: User = Depends(get_current_user)):
    """
    Save a finished conversation for the authenticated user.

    The record is always stored when the input is valid, whatever the quota
    state; saving does not consume call-seconds. When the user's quota is
    configured and used up the response carries `quotaExceeded: true`.

    Returns:
        dict: {id, transcript, summary, duration, status, startTime, endTime, createdAt}
              (+ quotaExceeded)

    Errors:
        400: missing/blank transcript, negative duration, unknown status
        401: no session
        500: the record could not be stored
    """
    c = await conversation_store.save_conversation(
        user,
        transcript=body.transcript,
        summary=body.summary,
        duration=body.duration,
        start_time=body.startTime,
        end_time=body.endTime,
        status=body.status,
    )
    out = conversation_store.conversation_to_dict(c)

    remaining = await quota_ledger.remaining(user.id)
    if remaining is not None and remaining <= 0:
        out["quotaExceeded"] = True
    logger.info("[conversations] saved id=%s user=%s duration=%s", c.id, user.id, c.duration)
    return out


@router.get("", response_model=list)
async def list_conversations(
    user: User = Depends(get_current_user),
    offset: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=200),
):
    """
    The authenticated user's conversations, most recent first.
    """
    rows = await conversation_store.list_conversations(user, offset=offset, limit=limit)
    return [conversation_store.conversation_to_dict(c) for c in rows]


@router.post("/tick", response_model=dict)
async def tick(body: TickIn, user: User = Depends(get_current_user)):
    """
    Consume call-seconds from the user's quota; tickSeconds=0 only reads it.

    Returns:
        dict: {"success": True, "remaining": int}

    Errors:
        403 {"error", "remaining": 0}: balance could not cover the tick (now clamped to 0)
        403 {"error"}: no quota configured
        404: user missing
    """
    remaining = await quota_ledger.tick(user.id, body.tickSeconds)
    return {"success": True, "remaining": remaining}


@router.get("/quota", response_model=QuotaOut)
async def quota(user: User = Depends(get_current_user)):
    """
    Current balance and warning level for the call controls. Never mutates.
    """
    remaining = await quota_ledger.remaining(user.id)
    return QuotaOut(
        remaining=remaining,
        level=quota_level(remaining),
        minStartSeconds=MIN_CALL_START_SECONDS,
        upgradeUrl=settings.dashboard_url,
    )


@router.get("/{cid}", response_model=dict)
async def get_conversation(cid: uuid.UUID, user: User = Depends(get_current_user)):
    """
    One of the authenticated user's conversations.

    Errors:
        404: not found or owned by someone else
    """
    c = await conversation_store.get_conversation(user, str(cid))
    return conversation_store.conversation_to_dict(c)

"""
Quota Ledger

Meters the per-user call-seconds allowance stored in Subscription.call_seconds:
- peek: read the balance without touching it (a tick of 0)
- tick: subtract seconds, clamping the balance at 0 when it cannot cover the tick

Read-modify-write is serialized per user with an asyncio.Lock, and the write
itself is a conditional UPDATE so the balance cannot drop below zero even when
several workers tick the same user.
"""
import asyncio
import logging
import weakref
from typing import Optional

from tortoise.expressions import F
from tortoise.transactions import in_transaction

from ..core.errors import NotFoundError, QuotaError, ValidationError
from ..models.user import User
from ..models.subscription import Subscription

logger = logging.getLogger("uvicorn.error")


class QuotaLedger:
    """Call-seconds ledger"""

    def __init__(self):
        # user id -> lock; entries vanish once no tick holds them
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, user_id) -> asyncio.Lock:
        key = str(user_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def _subscription_for(self, user_id) -> Subscription:
        user = await User.get_or_none(id=user_id)
        if user is None:
            raise NotFoundError(f"user {user_id} not found", public_message="User not found")
        sub = await Subscription.get_or_none(user_id=user.id)
        if sub is None or sub.call_seconds is None:
            raise QuotaError(QuotaError.UNCONFIGURED, detail=f"user {user_id} has no callSeconds quota")
        return sub

    async def remaining(self, user_id) -> Optional[int]:
        """
        Current balance, or None when the user has no quota configured.
        Never mutates.
        """
        try:
            return await self.peek(user_id)
        except QuotaError:
            return None

    async def peek(self, user_id) -> int:
        return await self.tick(user_id, 0)

    async def tick(self, user_id, amount: int) -> int:
        """
        Consume `amount` seconds from the user's balance.

        Returns:
            The new balance.

        Raises:
            ValidationError: amount is negative
            NotFoundError: user does not exist
            QuotaError(unconfigured): user has no call-seconds quota
            QuotaError(exhausted): balance was below `amount`; it is now 0
        """
        if amount < 0:
            raise ValidationError(f"negative tick {amount}", public_message="tickSeconds must be >= 0")

        async with self._lock_for(user_id):
            sub = await self._subscription_for(user_id)
            if amount == 0:
                return sub.call_seconds

            async with in_transaction():
                updated = await Subscription.filter(
                    id=sub.id, call_seconds__gte=amount
                ).update(call_seconds=F("call_seconds") - amount)
                if not updated:
                    await Subscription.filter(id=sub.id).update(call_seconds=0)

            if not updated:
                logger.info("[quota] user=%s exhausted (tick=%s, had=%s)", user_id, amount, sub.call_seconds)
                raise QuotaError(QuotaError.EXHAUSTED, remaining=0,
                                 detail=f"user {user_id} exhausted callSeconds")

            await sub.refresh_from_db(fields=["call_seconds"])
            logger.debug("[quota] user=%s tick=%s remaining=%s", user_id, amount, sub.call_seconds)
            return sub.call_seconds


# Global singleton
quota_ledger = QuotaLedger()

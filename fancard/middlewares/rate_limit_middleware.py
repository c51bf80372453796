"""
Rate-limiting middleware.

Protects the bot (and the code store behind it) against floods, e.g. a
public user hammering /verify or a stuck scanner resending the same photo.
Limits how many updates a single Telegram user can send within a rolling
time window; staff get a higher allowance than the public.
"""
from __future__ import annotations

import time
from collections import defaultdict, deque
from typing import Any, Awaitable, Callable, Deque, Dict

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject

THROTTLE_TEXT = "⏳ Слишком много запросов. Подождите немного и попробуйте снова."


class RateLimitMiddleware(BaseMiddleware):
    """
    Sliding-window rate limiter.

    Parameters
    ----------
    rate       : requests allowed per window for ordinary users
    staff_rate : requests allowed per window for staff / admins
    period     : window size in seconds
    """

    def __init__(self, rate: int = 30, staff_rate: int = 240, period: float = 60.0) -> None:
        self._rate       = rate
        self._staff_rate = staff_rate
        self._period     = period
        # user_id → deque of timestamps (most recent first)
        self._history: Dict[int, Deque[float]] = defaultdict(deque)

    def hit(self, user_id: int, is_staff: bool = False, now: float | None = None) -> bool:
        """Record one request; False when the user is over the limit."""
        now = time.monotonic() if now is None else now
        window = self._history[user_id]

        # Evict timestamps outside the current window
        while window and now - window[-1] > self._period:
            window.pop()

        limit = self._staff_rate if is_staff else self._rate
        if len(window) >= limit:
            return False
        window.appendleft(now)
        return True

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        user = data.get("event_from_user")
        if user is None:
            return await handler(event, data)

        if not self.hit(user.id, bool(data.get("is_staff"))):
            await self._throttle_response(data)
            return None
        return await handler(event, data)

    async def _throttle_response(self, data: Dict[str, Any]) -> None:
        """Send a throttle alert and acknowledge callbacks to clear spinners."""
        update = data.get("event_update")
        if update is None:
            return

        if update.callback_query:
            try:
                await update.callback_query.answer(THROTTLE_TEXT, show_alert=True)
            except Exception:
                pass
        elif update.message:
            try:
                await update.message.answer(THROTTLE_TEXT)
            except Exception:
                pass

"""
Role middleware.

Attaches `is_admin` and `is_staff` flags to handler data for all updates.
Admins manage codes; staff (registrars and gate scanners) register cards and
scan. Every admin is also staff. Verification is open to everyone.
"""
from typing import Any, Awaitable, Callable, Dict, Iterable

from aiogram import BaseMiddleware
from aiogram.filters import BaseFilter
from aiogram.types import TelegramObject


class RoleMiddleware(BaseMiddleware):
    def __init__(self, admin_ids: Iterable[int], staff_ids: Iterable[int] = ()) -> None:
        self._admins = frozenset(admin_ids)
        self._staff  = frozenset(staff_ids) | self._admins

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        user = data.get("event_from_user")
        data["is_admin"] = bool(user and user.id in self._admins)
        data["is_staff"] = bool(user and user.id in self._staff)
        return await handler(event, data)


# ── Reusable filters ─────────────────────────────────────────────────────────
# Filters only decide; a callback rejected everywhere lands in the fallback
# router, which tells the user access is denied.

class IsAdmin(BaseFilter):
    """Use on routers/handlers restricted to admins."""

    async def __call__(self, event: TelegramObject, is_admin: bool = False) -> bool:
        return is_admin


class IsStaff(BaseFilter):
    """Registrar / scanner access (admins included)."""

    async def __call__(self, event: TelegramObject, is_staff: bool = False) -> bool:
        return is_staff

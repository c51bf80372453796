"""
Verification — classify a code lookup and drive the verify-page state machine.

Classification is a pure function of the looked-up row, so camera scans,
manual entry and verify-link visits all agree for the same store state.
Nothing in this module writes to the Scan Log.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from fancard.errors import FanCardError
from fancard.models.models import Code, ScanStatus
from fancard.services.code_service import get_code

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Verification:
    """Outcome of one lookup."""
    code: str
    status: str                                  # ScanStatus.*
    fan_name: Optional[str] = None
    fan_email: Optional[str] = None
    registered_at: Optional[datetime] = None

    @property
    def is_registered(self) -> bool:
        return self.status == ScanStatus.REGISTERED

    @property
    def exists(self) -> bool:
        return self.status != ScanStatus.INVALID


def classify_row(code: str, row: Optional[Code]) -> Verification:
    if row is None:
        return Verification(code=code, status=ScanStatus.INVALID)
    if not row.is_registered:
        return Verification(code=row.code, status=ScanStatus.UNREGISTERED)
    return Verification(
        code=row.code,
        status=ScanStatus.REGISTERED,
        fan_name=row.fan_name,
        fan_email=row.fan_email,
        registered_at=row.registered_at,
    )


async def classify(session: AsyncSession, code: str) -> Verification:
    row = await get_code(session, code)
    return classify_row(code, row)


# ── Verify page state machine ─────────────────────────────────────────────────

class ViewState:
    IDLE     = "idle"
    LOADING  = "loading"
    OK       = "ok"
    NOTFOUND = "notfound"
    ERROR    = "error"

    TERMINAL = (OK, NOTFOUND, ERROR)


Lookup = Callable[[str], Awaitable[Verification]]


class VerifyFlow:
    """
    idle → loading → ok | notfound | error

    A flow built with an initial code starts in `loading` and is expected to
    run `check(initial_code)` right away. Every new submission re-enters
    `loading`. There is no retry: a store error lands in `error` with the
    raw message and the user resubmits.
    """

    def __init__(self, lookup: Lookup, initial_code: str = "") -> None:
        self._lookup = lookup
        self.initial_code = (initial_code or "").strip()
        self.state = ViewState.LOADING if self.initial_code else ViewState.IDLE
        self.result: Optional[Verification] = None
        self.message = ""

    async def start(self) -> str:
        """Run the lookup for a pre-supplied code, if any."""
        if self.initial_code:
            return await self.check(self.initial_code)
        return self.state

    async def check(self, code: str) -> str:
        code = (code or "").strip()
        if not code:
            return self.state

        self.state   = ViewState.LOADING
        self.message = ""
        self.result  = None
        try:
            verification = await self._lookup(code)
        except FanCardError as e:
            logger.error("Verify lookup for %s failed: %s", code, e.message)
            self.message = e.message or "Неизвестная ошибка"
            self.state   = ViewState.ERROR
            return self.state
        except Exception as e:
            logger.exception("Verify lookup for %s crashed", code)
            self.message = str(e) or "Ошибка при проверке"
            self.state   = ViewState.ERROR
            return self.state

        if not verification.exists:
            self.message = f"Код {code} не найден."
            self.state   = ViewState.NOTFOUND
            return self.state

        self.result = verification
        self.state  = ViewState.OK
        return self.state


def session_lookup(session: AsyncSession) -> Lookup:
    """Bind `classify` to an open session."""
    async def _lookup(code: str) -> Verification:
        return await classify(session, code)
    return _lookup

"""
Scan intake for the gate scanner.

Flow per frame: decode payload → classify → append ScanLog row → ScanResult.
Unlike the public verify page, every classification made here is logged,
invalid codes included.

`ScanSession` is the scanner's run loop: producers (photo decoder, manual
entry) push frames into a bounded queue, one consumer classifies them one at
a time. Stopping the session — explicitly, on exit from `async with`, or via
the registry at shutdown — always cancels the consumer and drops the
remaining frames.
"""
from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Hashable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fancard.errors import DecodeError, FanCardError, store_errors
from fancard.models.models import SCAN_CODE_LENGTH, ScanLog, ScanStatus
from fancard.services.link_service import extract_code, is_verify_url
from fancard.services.qr_service import PAYLOAD_TYPE
from fancard.services.verification_service import classify

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanResult:
    code: str
    status: str                                  # ScanStatus.*
    fan_name: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# ── Payload decoding ──────────────────────────────────────────────────────────

def parse_structured_payload(raw: str) -> str:
    """
    Code from a registration QR payload `{"type": "fancard", "code": ...}`.
    Raises DecodeError for anything else.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise DecodeError("not JSON") from e
    if not isinstance(data, dict) or data.get("type") != PAYLOAD_TYPE:
        raise DecodeError("not a fancard payload")
    code = data.get("code")
    if not isinstance(code, str) or not code:
        raise DecodeError("payload without code")
    return code


def decode_payload(raw: str) -> str:
    """
    Structured payload first, then a verify link, then the raw text itself.
    Decode failures are expected here and never reach the user.
    """
    try:
        return parse_structured_payload(raw)
    except DecodeError:
        pass

    text = raw.strip()
    if is_verify_url(text):
        code = extract_code(text)
        if code:
            return code
    return text


def normalize_manual_code(text: str) -> str:
    """Hand-typed codes are uppercased, like the printed cards."""
    return text.strip().upper()


# ── Classification + logging ──────────────────────────────────────────────────

async def log_scan(
    session: AsyncSession,
    code: str,
    status: str,
    fan_name: Optional[str] = None,
) -> ScanLog:
    entry = ScanLog(code=code[:SCAN_CODE_LENGTH], status=status, fan_name=fan_name or None)
    async with store_errors(session):
        session.add(entry)
        await session.flush()
    return entry


async def process_scan(session: AsyncSession, code: str) -> ScanResult:
    """
    Classify `code` and write its Scan Log row, whatever the outcome.
    Text longer than the log column is classified in full but logged and
    reported truncated.
    """
    verification = await classify(session, code)
    code = code[:SCAN_CODE_LENGTH]
    fan_name = verification.fan_name if verification.is_registered else None
    await log_scan(session, code, verification.status, fan_name)

    logger.info("Scan %s → %s%s", code, verification.status,
                f" ({fan_name})" if fan_name else "")
    return ScanResult(code=code, status=verification.status, fan_name=fan_name)


async def fetch_scan_history(session: AsyncSession, limit: int = 200) -> List[ScanLog]:
    """Latest Scan Log rows, newest first."""
    async with store_errors(session):
        result = await session.execute(
            select(ScanLog)
            .order_by(ScanLog.scanned_at.desc(), ScanLog.id.desc())
            .limit(limit)
        )
    return list(result.scalars().all())


# ── Scanner run loop ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ScanFrame:
    raw: str
    manual: bool = False

    @property
    def code(self) -> str:
        return normalize_manual_code(self.raw) if self.manual else decode_payload(self.raw)


ResultCallback = Callable[[ScanResult], Awaitable[None]]
ErrorCallback  = Callable[[ScanFrame, FanCardError], Awaitable[None]]


class ScanSession:
    """Bounded frame buffer + single consumer with explicit start/stop."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        on_result: Optional[ResultCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        buffer_size: int = 16,
    ) -> None:
        self._session_factory = session_factory
        self._on_result = on_result
        self._on_error  = on_error
        self._queue: asyncio.Queue[ScanFrame] = asyncio.Queue(maxsize=buffer_size)
        self._consumer: Optional[asyncio.Task] = None
        self.results: List[ScanResult] = []      # newest first
        self.dropped = 0

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    async def start(self) -> None:
        if self.running:
            return
        self._consumer = asyncio.create_task(self._consume())
        logger.debug("Scan session started")

    async def stop(self) -> None:
        consumer, self._consumer = self._consumer, None
        if consumer is not None:
            consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await consumer
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
        logger.debug("Scan session stopped (%d results)", len(self.results))

    async def __aenter__(self) -> "ScanSession":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.stop()

    def submit(self, raw: str, manual: bool = False) -> bool:
        """
        Producer side. Returns False if the session is not running.
        A full buffer drops its oldest frame to make room.
        """
        if not self.running:
            return False
        if self._queue.full():
            self._queue.get_nowait()
            self._queue.task_done()
            self.dropped += 1
            logger.warning("Scan buffer full, dropped oldest frame")
        self._queue.put_nowait(ScanFrame(raw, manual))
        return True

    async def drain(self) -> None:
        """Wait until every submitted frame has been processed."""
        await self._queue.join()

    def stats(self) -> Tuple[int, int]:
        """(valid, invalid) scans so far; unregistered counts as invalid."""
        valid = sum(1 for r in self.results if r.status == ScanStatus.REGISTERED)
        return valid, len(self.results) - valid

    async def _consume(self) -> None:
        while True:
            frame = await self._queue.get()
            try:
                await self._handle(frame)
            except Exception:
                logger.exception("Unexpected error while processing scan frame")
            finally:
                self._queue.task_done()

    async def _handle(self, frame: ScanFrame) -> None:
        code = frame.code
        if not code:
            return
        try:
            async with self._session_factory() as session:
                result = await process_scan(session, code)
                await session.commit()
        except FanCardError as e:
            logger.error("Scan of %s failed: %s", code, e.message)
            if self._on_error is not None:
                await self._safe(self._on_error(frame, e))
            return

        self.results.insert(0, result)
        if self._on_result is not None:
            await self._safe(self._on_result(result))

    @staticmethod
    async def _safe(callback: Awaitable[None]) -> None:
        try:
            await callback
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Scan callback failed")


class ScanSessionRegistry:
    """One running ScanSession per chat."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        buffer_size: int = 16,
    ) -> None:
        self._session_factory = session_factory
        self._buffer_size = buffer_size
        self._sessions: Dict[Hashable, ScanSession] = {}

    def get(self, key: Hashable) -> Optional[ScanSession]:
        return self._sessions.get(key)

    def __len__(self) -> int:
        return len(self._sessions)

    async def open(
        self,
        key: Hashable,
        on_result: Optional[ResultCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> ScanSession:
        await self.close(key)
        scan = ScanSession(self._session_factory, on_result, on_error, self._buffer_size)
        await scan.start()
        self._sessions[key] = scan
        return scan

    async def close(self, key: Hashable) -> Optional[ScanSession]:
        scan = self._sessions.pop(key, None)
        if scan is not None:
            await scan.stop()
        return scan

    async def close_all(self) -> None:
        for key in list(self._sessions):
            await self.close(key)

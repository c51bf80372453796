"""
Change feed for the `codes` table.

Service functions record what they changed on the session; the changes are
published only after the session commits (a rollback discards them).
Subscribers receive typed `CodeChange` events through bounded queues, and
`DebouncedReload` turns bursts of events into a single re-query.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Hashable, List, Optional, Tuple

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

_PENDING_KEY = "fancard.pending_changes"


class ChangeKind:
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class CodeChange:
    kind: str                              # ChangeKind.*
    code_ids: Tuple[int, ...] = field(default_factory=tuple)


# ── Feed ──────────────────────────────────────────────────────────────────────

class Subscription:
    """Bounded queue of changes; iterate with `async for`, close when done."""

    def __init__(self, feed: "ChangeFeed", maxsize: int) -> None:
        self._feed  = feed
        self._queue: asyncio.Queue[CodeChange] = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    def _deliver(self, change: CodeChange) -> None:
        if self._queue.full():
            # Drop the oldest; a reload covers everything anyway
            self._queue.get_nowait()
        self._queue.put_nowait(change)

    async def get(self) -> CodeChange:
        return await self._queue.get()

    def get_nowait(self) -> Optional[CodeChange]:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._feed._unsubscribe(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> CodeChange:
        if self.closed:
            raise StopAsyncIteration
        return await self.get()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class ChangeFeed:
    """In-process publish/subscribe channel for committed code changes."""

    def __init__(self, queue_size: int = 64) -> None:
        self._queue_size = queue_size
        self._subscribers: List[Subscription] = []

    def subscribe(self) -> Subscription:
        sub = Subscription(self, self._queue_size)
        self._subscribers.append(sub)
        return sub

    def _unsubscribe(self, sub: Subscription) -> None:
        with contextlib.suppress(ValueError):
            self._subscribers.remove(sub)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, change: CodeChange) -> None:
        logger.debug("Change feed: %s %s", change.kind, change.code_ids)
        for sub in list(self._subscribers):
            sub._deliver(change)


# ── Session integration ───────────────────────────────────────────────────────

def record_change(session: AsyncSession, change: CodeChange) -> None:
    """Queue a change for publication once `session` commits."""
    session.info.setdefault(_PENDING_KEY, []).append(change)


@event.listens_for(Session, "after_commit")
def _publish_after_commit(session: Session) -> None:
    pending = session.info.pop(_PENDING_KEY, None)
    feed = session.info.get("feed")
    if pending and feed is not None:
        for change in pending:
            feed.publish(change)


@event.listens_for(Session, "after_rollback")
def _discard_after_rollback(session: Session) -> None:
    session.info.pop(_PENDING_KEY, None)


# ── Debounced re-query ────────────────────────────────────────────────────────

class DebouncedReload:
    """
    Calls `reload()` once per burst of changes.

    After the first event the task keeps absorbing events until `delay`
    seconds pass without a new one, then reloads. Reload errors are logged
    and the watcher keeps running.
    """

    def __init__(
        self,
        feed: ChangeFeed,
        reload: Callable[[], Awaitable[None]],
        delay: float = 0.5,
    ) -> None:
        self._feed   = feed
        self._reload = reload
        self._delay  = delay
        self._sub: Optional[Subscription] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._sub  = self._feed.subscribe()
        self._task = asyncio.create_task(self._run(self._sub))

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if self._sub is not None:
            self._sub.close()
            self._sub = None

    async def _run(self, sub: Subscription) -> None:
        while True:
            await sub.get()
            while True:
                try:
                    await asyncio.wait_for(sub.get(), timeout=self._delay)
                except asyncio.TimeoutError:
                    break
            try:
                await self._reload()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("Live reload failed: %s", exc)


class LiveViews:
    """Registry of running `DebouncedReload` watchers keyed by view (e.g. chat id)."""

    def __init__(self, feed: ChangeFeed, delay: float = 0.5) -> None:
        self._feed  = feed
        self._delay = delay
        self._views: Dict[Hashable, DebouncedReload] = {}

    def __contains__(self, key: Hashable) -> bool:
        return key in self._views

    def __len__(self) -> int:
        return len(self._views)

    async def open(self, key: Hashable, reload: Callable[[], Awaitable[None]]) -> None:
        """Start (or replace) the watcher for `key`."""
        await self.close(key)
        watcher = DebouncedReload(self._feed, reload, self._delay)
        watcher.start()
        self._views[key] = watcher

    async def close(self, key: Hashable) -> None:
        watcher = self._views.pop(key, None)
        if watcher is not None:
            await watcher.stop()

    async def close_all(self) -> None:
        for key in list(self._views):
            await self.close(key)

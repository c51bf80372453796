"""
Tests — change feed, debounced reload and live views.

Coverage:
  - Changes reach subscribers only after commit; rollback discards them
  - Subscription overflow drops the oldest change
  - DebouncedReload coalesces a burst into one reload and survives errors
  - LiveViews open/replace/close
"""
from __future__ import annotations

import asyncio

import pytest

from fancard.errors import InputValidationError
from fancard.services.change_feed import (
    ChangeFeed,
    ChangeKind,
    CodeChange,
    DebouncedReload,
    LiveViews,
)
from fancard.services.code_service import create_codes, delete_pending_codes, register_code


# ─────────────────────────── Publication ──────────────────────────────────────

class TestPublishOnCommit:
    async def test_insert_published_after_commit(self, async_session, feed) -> None:
        with feed.subscribe() as sub:
            codes = await create_codes(async_session, 3)
            assert sub.get_nowait() is None

            await async_session.commit()
            change = sub.get_nowait()
            assert change.kind == ChangeKind.INSERT
            assert set(change.code_ids) == {c.id for c in codes}

    async def test_rollback_discards(self, async_session, feed) -> None:
        with feed.subscribe() as sub:
            await create_codes(async_session, 2)
            await async_session.rollback()
            await async_session.commit()
            assert sub.get_nowait() is None

    async def test_register_and_delete_kinds(self, async_session, feed) -> None:
        codes = await create_codes(async_session, 2)
        await async_session.commit()

        with feed.subscribe() as sub:
            await register_code(async_session, codes[0].code, "Jane Doe")
            await delete_pending_codes(async_session)
            await async_session.commit()

            kinds = [sub.get_nowait().kind, sub.get_nowait().kind]
            assert kinds == [ChangeKind.UPDATE, ChangeKind.DELETE]
            assert sub.get_nowait() is None

    async def test_failed_operation_publishes_nothing(self, async_session, feed) -> None:
        with feed.subscribe() as sub:
            with pytest.raises(InputValidationError):
                await create_codes(async_session, 0)
            await async_session.commit()
            assert sub.get_nowait() is None


class TestSubscription:
    def test_close_unsubscribes(self) -> None:
        feed = ChangeFeed()
        sub = feed.subscribe()
        assert feed.subscriber_count == 1
        sub.close()
        sub.close()
        assert feed.subscriber_count == 0

    def test_overflow_drops_oldest(self) -> None:
        feed = ChangeFeed(queue_size=2)
        sub = feed.subscribe()
        for i in range(3):
            feed.publish(CodeChange(ChangeKind.INSERT, (i,)))
        assert sub.get_nowait().code_ids == (1,)
        assert sub.get_nowait().code_ids == (2,)
        assert sub.get_nowait() is None

    async def test_async_iteration(self) -> None:
        feed = ChangeFeed()
        sub = feed.subscribe()
        feed.publish(CodeChange(ChangeKind.DELETE))
        async for change in sub:
            assert change.kind == ChangeKind.DELETE
            sub.close()
        assert feed.subscriber_count == 0


# ─────────────────────────── DebouncedReload ──────────────────────────────────

class TestDebouncedReload:
    async def test_burst_coalesced_into_one_reload(self) -> None:
        feed = ChangeFeed()
        reloads = []

        async def reload() -> None:
            reloads.append(1)

        watcher = DebouncedReload(feed, reload, delay=0.1)
        watcher.start()
        await asyncio.sleep(0)

        for i in range(5):
            feed.publish(CodeChange(ChangeKind.INSERT, (i,)))
            await asyncio.sleep(0.01)
        await asyncio.sleep(0.4)
        assert len(reloads) == 1

        feed.publish(CodeChange(ChangeKind.DELETE))
        await asyncio.sleep(0.4)
        assert len(reloads) == 2

        await watcher.stop()
        assert not watcher.running
        assert feed.subscriber_count == 0

    async def test_no_reload_without_changes(self) -> None:
        feed = ChangeFeed()
        reloads = []

        async def reload() -> None:
            reloads.append(1)

        watcher = DebouncedReload(feed, reload, delay=0.01)
        watcher.start()
        await asyncio.sleep(0.1)
        await watcher.stop()
        assert reloads == []

    async def test_reload_error_keeps_watching(self) -> None:
        feed = ChangeFeed()
        calls = []

        async def reload() -> None:
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("telegram hiccup")

        watcher = DebouncedReload(feed, reload, delay=0.01)
        watcher.start()
        feed.publish(CodeChange(ChangeKind.INSERT))
        await asyncio.sleep(0.1)
        assert watcher.running
        feed.publish(CodeChange(ChangeKind.INSERT))
        await asyncio.sleep(0.1)
        await watcher.stop()
        assert len(calls) == 2

    async def test_committed_changes_trigger_reload(self, async_session, feed) -> None:
        reloaded = asyncio.Event()

        async def reload() -> None:
            reloaded.set()

        watcher = DebouncedReload(feed, reload, delay=0.01)
        watcher.start()
        try:
            await create_codes(async_session, 1)
            await async_session.commit()
            await asyncio.wait_for(reloaded.wait(), timeout=1)
        finally:
            await watcher.stop()


# ─────────────────────────── LiveViews ────────────────────────────────────────

class TestLiveViews:
    async def test_open_replace_close(self) -> None:
        feed = ChangeFeed()
        views = LiveViews(feed, delay=0.01)

        async def reload() -> None:
            pass

        await views.open(1, reload)
        await views.open(1, reload)
        await views.open(2, reload)
        assert 1 in views and 2 in views
        assert len(views) == 2
        assert feed.subscriber_count == 2

        await views.close(1)
        assert 1 not in views
        await views.close_all()
        assert len(views) == 0
        assert feed.subscriber_count == 0

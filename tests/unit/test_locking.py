"""Unit tests for entity locks and the atomic unit of work.

Tests cover:
- Lock registry cleanup after release
- Mutual exclusion on a shared key
- Commit on success, rollback and propagation on error
- Retry on StaleDataError, then ConcurrencyConflictError
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.orm.exc import StaleDataError

from docreview.errors import ConcurrencyConflictError
from docreview.workflow.locking import EntityLocks, UnitOfWork, review_key, reviewer_key


def _session_factory() -> tuple[MagicMock, AsyncMock]:
    """Build a factory whose sessions work as async context managers."""
    session = AsyncMock()
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=session)
    context.__aexit__ = AsyncMock(return_value=False)
    factory = MagicMock(return_value=context)
    return factory, session


class TestKeys:
    """Tests for lock key helpers."""

    def test_keys_are_namespaced(self) -> None:
        """Test that reviews and reviewers never share a key."""
        assert review_key("42") == "review:42"
        assert reviewer_key("42") == "reviewer:42"


class TestEntityLocks:
    """Tests for EntityLocks."""

    @pytest.mark.asyncio
    async def test_locks_dropped_after_release(self) -> None:
        """Test that the registry does not grow with distinct keys."""
        locks = EntityLocks()
        async with locks.hold("review:1", "reviewer:a"):
            assert len(locks) == 2
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_same_key_is_exclusive(self) -> None:
        """Test that holders of one key run one at a time."""
        locks = EntityLocks()
        inside = 0
        peak = 0

        async def worker() -> None:
            nonlocal inside, peak
            async with locks.hold("review:1"):
                inside += 1
                peak = max(peak, inside)
                await asyncio.sleep(0.01)
                inside -= 1

        await asyncio.gather(*(worker() for _ in range(5)))

        assert peak == 1
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_opposite_order_does_not_deadlock(self) -> None:
        """Test that keys requested in different orders are acquired sorted."""
        locks = EntityLocks()
        done: list[str] = []

        async def worker(name: str, *keys: str) -> None:
            async with locks.hold(*keys):
                await asyncio.sleep(0.01)
                done.append(name)

        await asyncio.wait_for(
            asyncio.gather(
                worker("first", "review:1", "reviewer:a"),
                worker("second", "reviewer:a", "review:1"),
            ),
            timeout=1.0,
        )

        assert sorted(done) == ["first", "second"]

    @pytest.mark.asyncio
    async def test_lock_released_on_error(self) -> None:
        """Test that an exception inside the block releases the locks."""
        locks = EntityLocks()
        with pytest.raises(RuntimeError):
            async with locks.hold("review:1"):
                raise RuntimeError("boom")
        assert len(locks) == 0


class TestUnitOfWork:
    """Tests for UnitOfWork.run."""

    @pytest.mark.asyncio
    async def test_commits_and_returns_result(self) -> None:
        """Test that successful work is committed once."""
        factory, session = _session_factory()
        uow = UnitOfWork(factory, EntityLocks())
        work = AsyncMock(return_value="done")

        result = await uow.run(["review:1"], work)

        assert result == "done"
        work.assert_awaited_once_with(session)
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_errors_propagate_without_commit(self) -> None:
        """Test that errors raised by the work are not retried."""
        factory, session = _session_factory()
        uow = UnitOfWork(factory, EntityLocks())
        work = AsyncMock(side_effect=ValueError("bad input"))

        with pytest.raises(ValueError, match="bad input"):
            await uow.run(["review:1"], work)

        assert work.await_count == 1
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retries_stale_data(self) -> None:
        """Test that a version conflict is retried in a fresh session."""
        factory, session = _session_factory()
        uow = UnitOfWork(factory, EntityLocks(), retries=2)
        session.commit.side_effect = [StaleDataError("stale"), None]
        work = AsyncMock(return_value=7)

        result = await uow.run(["review:1"], work)

        assert result == 7
        assert work.await_count == 2
        assert factory.call_count == 2
        session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self) -> None:
        """Test that persistent conflicts raise ConcurrencyConflictError."""
        factory, session = _session_factory()
        uow = UnitOfWork(factory, EntityLocks(), retries=2)
        session.commit.side_effect = StaleDataError("stale")
        work = AsyncMock(return_value=None)

        with pytest.raises(ConcurrencyConflictError) as exc_info:
            await uow.run(["reviewer:a", "review:1"], work)

        assert exc_info.value.attempts == 3
        assert exc_info.value.keys == ("review:1", "reviewer:a")
        assert exc_info.value.retry_safe is True
        assert work.await_count == 3

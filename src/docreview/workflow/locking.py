"""Per-entity mutual exclusion and atomic units of work.

Every state-mutating engine operation runs as an atomic read-modify-write:

1. Acquire in-process locks for every entity key it touches (sorted, so
   two operations never wait on each other in opposite order).
2. Open a fresh session, run the work, commit.
3. If a concurrent writer in another process bumped a version column
   (``StaleDataError``), roll back and re-run, up to ``retries`` times,
   then raise ConcurrencyConflictError.

Example:
    >>> uow = UnitOfWork(session_factory, EntityLocks(), retries=2)
    >>> await uow.run([review_key(review_id)], do_work)
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from contextlib import asynccontextmanager
from typing import TypeVar

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from docreview.errors import ConcurrencyConflictError

logger = structlog.get_logger(__name__)

SessionFactory = Callable[[], AsyncSession]
T = TypeVar("T")


def review_key(review_id: uuid.UUID | str) -> str:
    """Lock key for a document review."""
    return f"review:{review_id}"


def reviewer_key(reviewer_id: str) -> str:
    """Lock key for a reviewer profile."""
    return f"reviewer:{reviewer_id}"


class EntityLocks:
    """Registry of asyncio locks keyed by entity.

    Locks are created on demand and dropped once no coroutine holds or
    waits for them.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def _checkout(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _checkin(self, key: str) -> None:
        remaining = self._users[key] - 1
        if remaining:
            self._users[key] = remaining
        else:
            del self._users[key]
            del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, *keys: str) -> AsyncIterator[None]:
        """Hold the locks for all keys, acquired in sorted order."""
        ordered = sorted(set(keys))
        acquired: list[str] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                try:
                    await lock.acquire()
                except BaseException:
                    self._checkin(key)
                    raise
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._locks[key].release()
                self._checkin(key)


class UnitOfWork:
    """Runs a coroutine atomically against a fresh session.

    Attributes:
        session_factory: Callable producing AsyncSession context managers.
        locks: Shared EntityLocks registry.
        retries: Re-runs allowed after a version conflict.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        locks: EntityLocks,
        retries: int = 2,
    ) -> None:
        self.session_factory = session_factory
        self.locks = locks
        self.retries = retries

    async def run(
        self,
        keys: Iterable[str],
        work: Callable[[AsyncSession], Awaitable[T]],
    ) -> T:
        """Run ``work`` under the entity locks and commit its changes.

        Errors raised by ``work`` roll the session back and propagate
        unchanged.

        Raises:
            ConcurrencyConflictError: If the versions still conflict after
                all retries.
        """
        lock_keys = tuple(sorted(set(keys)))
        attempts = 0
        while True:
            attempts += 1
            async with self.locks.hold(*lock_keys):
                async with self.session_factory() as session:
                    try:
                        result = await work(session)
                        await session.commit()
                        return result
                    except StaleDataError:
                        await session.rollback()
                        if attempts > self.retries:
                            logger.warning(
                                "unit_of_work_conflict_unresolved",
                                keys=list(lock_keys),
                                attempts=attempts,
                            )
                            raise ConcurrencyConflictError(lock_keys, attempts) from None
                        logger.info(
                            "unit_of_work_conflict_retry",
                            keys=list(lock_keys),
                            attempt=attempts,
                        )

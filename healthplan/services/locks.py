"""Keyed locks for daily log writes and plan adjustments.

The planner keys on ``(user_id, plan_type)`` and the logging workflow on
``(user_id, "daily_log")``.

``KeyedLocks`` serialises holders inside one process. ``AdvisoryLocks``
adds a Postgres transaction-level advisory lock on a dedicated connection,
so holders in other worker processes are excluded too. The in-process lock
is taken first and keeps same-process contention off the database.
"""

import asyncio
import uuid
from collections.abc import AsyncIterator, Callable, Hashable
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from healthplan.core.errors import PersistenceError
from healthplan.logging_config import get_logger

logger = get_logger(__name__)

# Advisory lock namespaces (int32), one per lock kind
LOCK_NAMESPACES: dict[str, int] = {
    "meal": 0x4D45414C,  # "MEAL"
    "training": 0x5452414E,  # "TRAN"
    "daily_log": 0x444C4F47,  # "DLOG"
}


class LockBusyError(Exception):
    """Raised by a non-waiting ``hold`` when the key is already held."""

    def __init__(self, key: Hashable):
        super().__init__(f"Lock already held: {key!r}")
        self.key = key


def advisory_key(key: tuple[uuid.UUID, str]) -> tuple[int, int]:
    """Map ``(user_id, kind)`` to the two int32 advisory lock arguments."""
    user_id, kind = key
    return LOCK_NAMESPACES[str(kind)], int(user_id.int % (2**31))


class KeyedLocks:
    """Registry of asyncio locks keyed by arbitrary hashable values.

    A key's lock exists only while somebody holds or waits for it.
    """

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    async def is_held(self, key: Hashable) -> bool:
        """Whether any holder currently has ``key``."""
        return self.locked(key)

    @asynccontextmanager
    async def hold(self, key: Hashable, *, wait: bool = True) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block.

        Args:
            key: Lock key.
            wait: If False, fail immediately instead of queueing behind the
                current holder.

        Raises:
            LockBusyError: ``wait`` is False and the key is held.
        """
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        elif not wait and lock.locked():
            raise LockBusyError(key)

        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]


class AdvisoryLocks(KeyedLocks):
    """Keyed locks that also exclude other processes through Postgres.

    Keys must be ``(user_id, kind)`` tuples with ``kind`` in
    ``LOCK_NAMESPACES``. Each hold opens its own connection and takes
    ``pg_advisory_xact_lock`` inside a transaction that stays open for the
    block; ending the transaction releases the lock, including when the
    block raises.
    """

    def __init__(self, engine: Callable[[], AsyncEngine]) -> None:
        super().__init__()
        self._engine = engine

    async def is_held(self, key: Hashable) -> bool:
        if self.locked(key):
            return True

        ns, lock_key = advisory_key(key)
        try:
            async with self._engine().connect() as conn:
                result = await conn.execute(
                    text(
                        "SELECT EXISTS (SELECT 1 FROM pg_locks "
                        "WHERE locktype = 'advisory' AND classid = :ns "
                        "AND objid = :key AND objsubid = 2 AND granted)"
                    ),
                    {"ns": ns, "key": lock_key},
                )
                return bool(result.scalar())
        except SQLAlchemyError as e:
            logger.error("Advisory lock lookup failed", lock_kind=str(key[1]), error=str(e))
            raise PersistenceError("Lock lookup failed") from e

    @asynccontextmanager
    async def hold(self, key: Hashable, *, wait: bool = True) -> AsyncIterator[None]:
        ns, lock_key = advisory_key(key)
        params = {"ns": ns, "key": lock_key}
        log = logger.bind(lock_kind=str(key[1]), user_id=str(key[0]))

        async with super().hold(key, wait=wait):
            try:
                async with self._engine().connect() as conn, conn.begin():
                    if wait:
                        await conn.execute(
                            text("SELECT pg_advisory_xact_lock(:ns, :key)"), params
                        )
                    else:
                        result = await conn.execute(
                            text("SELECT pg_try_advisory_xact_lock(:ns, :key)"), params
                        )
                        if not result.scalar():
                            log.info("Advisory lock held by another process")
                            raise LockBusyError(key)
                    yield
            except SQLAlchemyError as e:
                log.error("Advisory lock failed", error=str(e))
                raise PersistenceError("Lock acquisition failed") from e

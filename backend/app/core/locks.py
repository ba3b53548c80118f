"""
Per-workload mutual exclusion for deployment lifecycle operations.

Deploy, stop, remove and delete of one workload must never interleave:
two concurrent deploys would each create a container and the last write
of container_id would orphan the other. The registry hands out one
asyncio.Lock per workload id; a request that finds the lock held is
rejected with WorkloadBusyError instead of queueing behind it.

The registry is process-local. Running several API worker processes
against one database needs a database-level lock instead.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict
from uuid import UUID

from app.core.exceptions import WorkloadBusyError

logger = logging.getLogger(__name__)


class WorkloadLockRegistry:
    """Hands out non-blocking per-workload locks."""

    def __init__(self):
        self._locks: Dict[UUID, asyncio.Lock] = {}

    def is_locked(self, workload_id: UUID) -> bool:
        lock = self._locks.get(workload_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def acquire(self, workload_id: UUID) -> AsyncIterator[None]:
        """
        Hold the lock for ``workload_id`` for the duration of the block.

        Raises:
            WorkloadBusyError: If another operation already holds the lock
        """
        lock = self._locks.setdefault(workload_id, asyncio.Lock())
        if lock.locked():
            logger.warning(f"Rejecting concurrent operation on workload {workload_id}")
            raise WorkloadBusyError(str(workload_id))

        await lock.acquire()
        try:
            yield
        finally:
            lock.release()
            # Drop idle locks so the registry does not grow with every workload ever touched
            if not lock.locked() and self._locks.get(workload_id) is lock:
                del self._locks[workload_id]


# Singleton instance
workload_locks = WorkloadLockRegistry()

"""
Repository for Workload entity database operations.

Every lookup is scoped by (id, owner_id): a workload owned by someone else
is indistinguishable from one that does not exist.
"""
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, desc, func, select

from app.core.exceptions import WorkloadNotFoundError
from app.models.workload import DEPLOYED_STATUSES, Workload
from app.repositories.base import BaseRepository


class WorkloadRepository(BaseRepository[Workload]):
    """Repository for Workload database operations."""

    model = Workload

    async def get_for_owner(self, id: UUID, owner_id: UUID) -> Optional[Workload]:
        """Get a workload by ID if it belongs to ``owner_id``."""
        result = await self.db.execute(
            select(Workload).where(
                Workload.id == id,
                Workload.owner_id == owner_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_for_owner_or_raise(self, id: UUID, owner_id: UUID) -> Workload:
        """Get an owned workload, raising exception if not found."""
        workload = await self.get_for_owner(id, owner_id)
        if not workload:
            raise WorkloadNotFoundError(str(id))
        return workload

    async def list_for_owner(
        self,
        owner_id: UUID,
        search: Optional[str] = None,
        page: int = 1,
        size: int = 100,
    ) -> Tuple[List[Workload], int]:
        """List an owner's workloads, most recently updated first."""
        conditions = [Workload.owner_id == owner_id]
        if search:
            conditions.append(Workload.name.contains(search))

        count_stmt = select(func.count(Workload.id)).where(and_(*conditions))
        total = (await self.db.execute(count_stmt)).scalar_one()

        skip = (page - 1) * size
        query = (
            select(Workload)
            .where(and_(*conditions))
            .order_by(desc(Workload.updated_at), Workload.id)
            .offset(skip)
            .limit(size)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def list_deployed(self, owner_id: UUID) -> List[Workload]:
        """List an owner's workloads that are in any deployed state."""
        result = await self.db.execute(
            select(Workload)
            .where(
                Workload.owner_id == owner_id,
                Workload.deployment_status.in_(DEPLOYED_STATUSES),
            )
            .order_by(desc(Workload.updated_at), Workload.id)
        )
        return list(result.scalars().all())

    async def save(self, workload: Workload) -> Workload:
        """
        Persist a mutated workload.

        updated_at is refreshed explicitly so status transitions that touch
        no other column still move the workload to the top of the list.
        """
        workload.updated_at = datetime.utcnow()
        return await self.update(workload)

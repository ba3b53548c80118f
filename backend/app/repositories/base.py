"""
Base repository with the persistence steps shared by every repository.

Each subclass sets ``model`` and adds its own scoped queries. Writes commit
immediately: one repository call is one transaction.
"""
from typing import Generic, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import DeclarativeBase

T = TypeVar("T", bound=DeclarativeBase)


class BaseRepository(Generic[T]):
    """Generic repository over a single model class."""

    model: Type[T]

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, entity: T) -> T:
        """Insert ``entity`` and return it with server defaults loaded."""
        self.db.add(entity)
        return await self._commit(entity)

    async def update(self, entity: T) -> T:
        """Commit pending changes on an entity already attached to the session."""
        return await self._commit(entity)

    async def delete(self, entity: T) -> bool:
        await self.db.delete(entity)
        await self.db.commit()
        return True

    async def _commit(self, entity: T) -> T:
        await self.db.commit()
        await self.db.refresh(entity)
        return entity

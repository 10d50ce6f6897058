"""
Base repository.

Generic async CRUD on top of a single SQLAlchemy model.
"""

import uuid
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with generic CRUD operations.

    Repositories never commit: the caller (request middleware, job or
    ``with_auto_commit`` decorated method) owns the transaction.

    Example:
        class WalletRepository(BaseRepository[Wallet]):
            def __init__(self, session: AsyncSession):
                super().__init__(Wallet, session)
    """

    def __init__(
        self, model: type[ModelType], session: AsyncSession
    ) -> None:
        self.model = model
        self.session = session

    async def get_by_id(self, id: uuid.UUID) -> ModelType | None:
        return await self.session.get(self.model, id)

    async def get_for_update(self, id: uuid.UUID) -> ModelType | None:
        """
        Get entity by ID with a row lock (SELECT ... FOR UPDATE).

        Use before read-modify-write of balances and statuses.
        """
        stmt = select(self.model).where(self.model.id == id).with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by(self, **filters: Any) -> ModelType | None:
        """Get single entity by column filters."""
        stmt = select(self.model).filter_by(**filters)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_all(
        self,
        limit: int | None = None,
        offset: int | None = None,
        **filters: Any,
    ) -> list[ModelType]:
        """
        Find all entities matching filters, newest first.

        Args:
            limit: Max number of results
            offset: Number of results to skip
            **filters: Column filters

        Returns:
            List of matching entities
        """
        stmt = (
            select(self.model)
            .filter_by(**filters)
            .order_by(self.model.created_at.desc())
        )

        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_by(self, **filters: Any) -> list[ModelType]:
        return await self.find_all(**filters)

    async def create(self, **data: Any) -> ModelType:
        """
        Create new entity.

        Flushes and refreshes so server defaults (created_at) are loaded.
        """
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def update(
        self, id: uuid.UUID, for_update: bool = False, **data: Any
    ) -> ModelType | None:
        """
        Update entity by ID.

        Args:
            id: Entity ID
            for_update: Lock the row first (SELECT FOR UPDATE)
            **data: Column values to set

        Returns:
            Updated entity or None if not found
        """
        if for_update:
            entity = await self.get_for_update(id)
        else:
            entity = await self.get_by_id(id)

        if not entity:
            return None

        for key, value in data.items():
            setattr(entity, key, value)

        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def delete(self, id: uuid.UUID) -> bool:
        """Delete entity by ID. Returns False if nothing was deleted."""
        stmt = delete(self.model).where(self.model.id == id)
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0

    async def count(self, **filters: Any) -> int:
        stmt = select(func.count()).select_from(self.model)

        if filters:
            stmt = stmt.filter_by(**filters)

        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def exists(self, **filters: Any) -> bool:
        count = await self.count(**filters)
        return count > 0

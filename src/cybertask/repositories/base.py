"""Base repository with common CRUD operations."""

from collections.abc import Iterable
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """Base repository providing common database operations.

    Repositories handle data access only. Transaction control (commit)
    should be done in the service layer.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: UUID) -> ModelType | None:
        """Get a record by its primary key."""
        result = await self.session.execute(
            select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        )
        return result.scalar_one_or_none()

    async def get_many(self, ids: Iterable[UUID]) -> dict[UUID, ModelType]:
        """Load records by primary key. Missing ids are absent from the result."""
        wanted = set(ids)
        if not wanted:
            return {}
        result = await self.session.execute(
            select(self.model).where(self.model.id.in_(wanted))  # type: ignore[attr-defined]
        )
        return {entity.id: entity for entity in result.scalars().all()}  # type: ignore[attr-defined]

    def add(self, entity: ModelType) -> None:
        """Add entity to session (no flush/commit)."""
        self.session.add(entity)

    async def delete(self, entity: ModelType) -> None:
        """Mark entity for deletion (no commit)."""
        await self.session.delete(entity)

    async def count(self, query: Any) -> int:
        """Count the rows a query would return, ignoring its ordering."""
        subquery = query.order_by(None).subquery()
        result = await self.session.execute(select(func.count()).select_from(subquery))
        return int(result.scalar_one())

    async def paginate(
        self,
        query: Any,  # SelectOfScalar or Select - SQLModel/SQLAlchemy query
        page: int,
        limit: int,
    ) -> tuple[list[ModelType], int]:
        """Execute page-number pagination on an already ordered query.

        Args:
            query: The ordered SQLAlchemy query to paginate
            page: 1-based page number
            limit: Page size

        Returns:
            Tuple of (items, total) where total counts every matching row
        """
        total = await self.count(query)
        result = await self.session.execute(query.offset((page - 1) * limit).limit(limit))
        return list(result.scalars().all()), total

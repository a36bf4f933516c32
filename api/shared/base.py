"""Generic repository with the CRUD operations shared by all entities."""
from abc import ABC
from typing import Any, Generic, List, Optional, Sequence, Type, TypeVar, Tuple, Union

from sqlalchemy import select, func, delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from api.shared.entities.base import BaseEntity

T = TypeVar("T", bound=BaseEntity)


class BaseRepository(ABC, Generic[T]):
    """Base repository with common CRUD operations."""

    model: Type[T]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, entity: T) -> T:
        """Create new entity."""
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def get_by_id(self, entity_id: str) -> Optional[T]:
        """Get entity by ID."""
        stmt = select(self.model).where(self.model.id == entity_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_field(
        self, field_name: str, value: Any, limit: Optional[int] = None
    ) -> List[T]:
        """Get entities by field value."""
        field = getattr(self.model, field_name)
        stmt = select(self.model).where(field == value)

        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update_by_id(self, entity_id: str, **kwargs: Any) -> Optional[T]:
        """Update entity by ID with field values."""
        stmt = (
            update(self.model)
            .where(self.model.id == entity_id)
            .values(**kwargs)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.execute(stmt)
        await self.session.flush()
        entity = await self.get_by_id(entity_id)
        if entity:
            await self.session.refresh(entity)
        return entity

    async def delete(self, entity_id: str) -> bool:
        """Delete entity by ID."""
        stmt = delete(self.model).where(self.model.id == entity_id)
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0

    async def delete_by_field(self, field_name: str, value: Any) -> int:
        """Delete entities by field value."""
        field = getattr(self.model, field_name)
        stmt = delete(self.model).where(field == value)
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount

    async def list(
        self,
        offset: int = 0,
        limit: int = 100,
        order_by: Union[str, Sequence[str], None] = None,
        **filters: Any,
    ) -> Tuple[List[T], int]:
        """List entities with pagination and equality filters.

        ``order_by`` is a column name, or a list of them applied in turn, each
        prefixed with ``-`` for descending.
        """
        count_stmt = select(func.count(self.model.id))
        stmt = select(self.model)

        for field_name, value in filters.items():
            if value is None or not hasattr(self.model, field_name):
                continue
            field = getattr(self.model, field_name)
            if isinstance(value, (list, tuple)):
                stmt = stmt.where(field.in_(value))
                count_stmt = count_stmt.where(field.in_(value))
            else:
                stmt = stmt.where(field == value)
                count_stmt = count_stmt.where(field == value)

        if isinstance(order_by, str):
            order_by = [order_by]
        for key in order_by or []:
            descending = key.startswith("-")
            field_name = key.lstrip("-")
            if hasattr(self.model, field_name):
                field = getattr(self.model, field_name)
                stmt = stmt.order_by(field.desc() if descending else field.asc())

        stmt = stmt.offset(offset).limit(limit)

        result = await self.session.execute(stmt)
        count_result = await self.session.execute(count_stmt)

        # count_result.scalar() may be None, default to 0
        total = count_result.scalar() or 0
        return list(result.scalars().all()), int(total)

    async def exists(self, entity_id: str) -> bool:
        """Check if entity exists."""
        stmt = select(self.model.id).where(self.model.id == entity_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

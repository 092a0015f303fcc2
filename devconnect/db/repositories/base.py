from typing import Any, Generic, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from devconnect.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base class for data access layer.

    Repositories never commit. They flush inside whatever transaction the
    caller opened, so a service can group several calls into one atomic unit.
    """

    def __init__(self, model: Type[ModelType]):
        self.model = model

    async def get(self, session: AsyncSession, pk: Any, for_update: bool = False) -> ModelType | None:
        """Get a single record by primary key."""
        if not for_update:
            return await session.get(self.model, pk)
        stmt = select(self.model).where(self.model.id == pk).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_attribute(self, session: AsyncSession, attribute: str, value: Any) -> ModelType | None:
        """Get a single record by an attribute."""
        stmt = select(self.model).where(getattr(self.model, attribute) == value)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, session: AsyncSession, data: dict) -> ModelType:
        """Create a new record."""
        instance = self.model(**data)
        session.add(instance)
        await session.flush()
        return instance


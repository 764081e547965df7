"""
Base repository with common read operations.
"""

from typing import TypeVar, Generic, Type, Optional, List
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with common operations keyed by integer primary key.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def get_by_id(self, id: int) -> Optional[ModelType]:
        """Get entity by ID."""
        query = select(self.model).where(getattr(self.model, 'id') == id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def count(self) -> int:
        """Count all entities."""
        query = select(func.count()).select_from(self.model)
        result = await self.session.execute(query)
        return result.scalar() or 0

    async def add(self, entity: ModelType) -> ModelType:
        """Persist a new entity and load server defaults."""
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def _all(self, query) -> List[ModelType]:
        result = await self.session.execute(query)
        return list(result.scalars().all())

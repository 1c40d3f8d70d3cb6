"""
Base Repository Pattern with SQLAlchemy

Provides common async CRUD operations for all repositories.
"""
from typing import TypeVar, Generic, Optional, Type, Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models.base import Base


# Generic type for model classes
ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """
    Base repository with common async database operations.

    Subclasses should set the `model` class attribute to their specific
    SQLAlchemy model class.

    Example:
        class CacheRepository(BaseRepository[CacheEntry]):
            model = CacheEntry
    """

    model: Type[ModelT]

    def __init__(self, session: AsyncSession):
        """
        Initialize repository with database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    # ============================================
    # READ OPERATIONS
    # ============================================

    async def get(self, entity_id: Any) -> Optional[ModelT]:
        """
        Get entity by primary key.

        Returns:
            Entity or None if not found
        """
        return await self.session.get(self.model, entity_id)

    async def count(self) -> int:
        """Count all entities."""
        stmt = select(func.count()).select_from(self.model)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    # ============================================
    # WRITE OPERATIONS
    # ============================================

    async def add(self, entity: ModelT) -> ModelT:
        """
        Add a new entity.

        Returns:
            Added entity with any auto-generated values
        """
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def update(self, entity: ModelT) -> ModelT:
        """
        Update an existing entity.

        Returns:
            Updated entity
        """
        merged = await self.session.merge(entity)
        await self.session.flush()
        return merged

    async def delete(self, entity_id: Any) -> bool:
        """
        Delete entity by primary key.

        Returns:
            True if deleted, False if not found
        """
        entity = await self.get(entity_id)
        if entity:
            await self.session.delete(entity)
            await self.session.flush()
            return True
        return False

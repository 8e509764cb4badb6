from typing import Any, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from loguru import logger

from expert_interviews.db.base_class import Base
from expert_interviews.core.exceptions import DatabaseError, ResourceNotFoundError

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType]):
    """
    Base class for CRUD operations with error handling

    Methods flush but never commit; the caller owns the transaction.
    """

    def __init__(self, model: Type[ModelType]):
        """
        Initialize with model class

        Args:
            model: SQLAlchemy model class
        """
        self.model = model

    async def get(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        """
        Get a record by ID

        Args:
            db: Database session
            id: Record ID

        Returns:
            Model instance if found, None otherwise
        """
        try:
            result = await db.execute(select(self.model).filter(self.model.id == id))
            return result.scalars().first()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving {self.model.__name__} with ID {id}: {e}")
            raise DatabaseError(f"Error retrieving {self.model.__name__}") from e

    async def get_or_404(self, db: AsyncSession, id: Any) -> ModelType:
        """
        Get a record by ID or raise 404 error if not found

        Raises:
            ResourceNotFoundError: If record doesn't exist
        """
        model = await self.get(db, id=id)
        if model is None:
            raise ResourceNotFoundError(self._resource_name(), str(id))
        return model

    async def get_by_condition(
            self, db: AsyncSession, *, condition, skip: int = 0, limit: Optional[int] = 100
    ) -> List[ModelType]:
        """
        Get records by condition, newest first

        Args:
            db: Database session
            condition: SQLAlchemy filter condition
            skip: Number of records to skip
            limit: Maximum number of records to return, None for all

        Returns:
            List of model instances
        """
        try:
            query = (
                select(self.model)
                .filter(condition)
                .order_by(self.model.created_at.desc())
                .offset(skip)
            )
            if limit is not None:
                query = query.limit(limit)
            result = await db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving {self.model.__name__} by condition: {e}")
            raise DatabaseError(f"Error retrieving {self.model.__name__} records") from e

    async def create(self, db: AsyncSession, *, obj_in: CreateSchemaType, **kwargs) -> ModelType:
        """
        Create a new record

        Args:
            db: Database session
            obj_in: Input schema for creation
            **kwargs: Additional model fields

        Returns:
            Created model instance
        """
        try:
            db_obj = self.model(**obj_in.model_dump(exclude_unset=True), **kwargs)
            db.add(db_obj)
            await db.flush()
            await db.refresh(db_obj)
            return db_obj
        except SQLAlchemyError as e:
            logger.error(f"Error creating {self.model.__name__}: {e}")
            raise DatabaseError(f"Error creating {self.model.__name__}") from e

    async def remove_by_condition(
            self, db: AsyncSession, *, condition
    ) -> int:
        """
        Remove records by condition

        Returns:
            Number of records deleted
        """
        try:
            result = await db.execute(
                delete(self.model).where(condition)
            )
            await db.flush()
            return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Error removing {self.model.__name__} by condition: {e}")
            raise DatabaseError(f"Error removing {self.model.__name__} records") from e

    def _resource_name(self) -> str:
        return self.model.__name__

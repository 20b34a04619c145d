"""
Base Data Access Object (DAO) class.

WHY: The DAO pattern separates database operations from business logic,
making the codebase more testable, maintainable, and allowing easier
database technology changes in the future.

Storage errors never leave this layer raw: every SQLAlchemyError is
translated into PersistenceError so services and routes only deal with the
application exception hierarchy.
"""

import logging
from typing import Generic, TypeVar, Type, Optional, List, Any
from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quotedesk.core.exceptions import PersistenceError
from quotedesk.models.base import Base

# Type variable for model class
ModelType = TypeVar("ModelType", bound=Base)

logger = logging.getLogger(__name__)


class BaseDAO(Generic[ModelType]):
    """
    Base Data Access Object providing CRUD operations for all models.

    WHY: Centralizing database operations in DAOs separates data access
    concerns from business logic, making code more testable and maintainable.
    Using generics allows type-safe reuse across different models.

    Type Parameters:
        ModelType: The SQLAlchemy model class this DAO manages
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """
        Initialize DAO with model class and database session.

        WHY: Dependency injection of the session allows easier testing
        with mock sessions and ensures proper session lifecycle management.

        Args:
            model: The SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    async def _execute(self, statement: Any) -> Any:
        """
        Execute a statement, translating storage errors.

        Raises:
            PersistenceError: If the database rejects the statement
        """
        try:
            return await self.session.execute(statement)
        except SQLAlchemyError as e:
            logger.error(f"{self.model.__name__} query failed: {e.__class__.__name__}")
            raise PersistenceError(
                f"Database error while accessing {self.model.__tablename__}",
                operation="execute",
            ) from e

    async def _flush(self, instance: Optional[ModelType] = None) -> None:
        """
        Flush pending changes (and refresh the instance), translating storage errors.

        Raises:
            PersistenceError: If the flush fails
        """
        try:
            await self.session.flush()
            if instance is not None:
                await self.session.refresh(instance)
        except SQLAlchemyError as e:
            logger.error(f"{self.model.__name__} flush failed: {e.__class__.__name__}")
            raise PersistenceError(
                f"Database error while writing {self.model.__tablename__}",
                operation="flush",
            ) from e

    async def create(self, **kwargs: Any) -> ModelType:
        """
        Create a new record.

        Args:
            **kwargs: Field values for the new record

        Returns:
            The created model instance with database-generated fields populated

        Raises:
            PersistenceError: If constraints are violated or the write fails
        """
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self._flush(instance)  # Flush to get auto-generated fields
        return instance

    async def get_by_id(self, id: int) -> Optional[ModelType]:
        """
        Retrieve a single record by primary key.

        Args:
            id: Primary key value

        Returns:
            The model instance if found, None otherwise
        """
        result = await self._execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def get_all(self, skip: int = 0, limit: int = 100, **filters: Any) -> List[ModelType]:
        """
        Retrieve multiple records with optional pagination and filtering.

        WHY: Pagination prevents memory issues with large datasets.
        Keyword filters provide flexible querying while maintaining type safety.

        Args:
            skip: Number of records to skip (for pagination)
            limit: Maximum number of records to return
            **filters: Field name to value filters (e.g., status="pending")

        Returns:
            List of model instances matching the filters, oldest first
        """
        query = select(self.model)

        # Apply filters
        for field, value in filters.items():
            if hasattr(self.model, field):
                query = query.where(getattr(self.model, field) == value)

        query = query.order_by(self.model.id).offset(skip).limit(limit)

        result = await self._execute(query)
        return list(result.scalars().all())

    async def update(self, id: int, **kwargs: Any) -> Optional[ModelType]:
        """
        Update an existing record.

        Args:
            id: Primary key of the record to update
            **kwargs: Fields to update

        Returns:
            Updated model instance if found, None otherwise
        """
        instance = await self.get_by_id(id)
        if instance is None:
            return None
        for field, value in kwargs.items():
            setattr(instance, field, value)
        await self._flush(instance)
        return instance

    async def update_where(self, id: int, conditions: dict, **values: Any) -> bool:
        """
        Conditionally update a record in a single statement.

        WHAT: UPDATE ... WHERE id = :id AND <field> = <value> for each condition.

        WHY: Lets callers implement optimistic concurrency (compare-and-set
        on a version column) without holding row locks between read and write.

        Args:
            id: Primary key of the record to update
            conditions: Field name to expected value
            **values: Fields to write

        Returns:
            True if exactly one row matched and was written
        """
        statement = update(self.model).where(self.model.id == id)
        for field, expected in conditions.items():
            statement = statement.where(getattr(self.model, field) == expected)
        statement = statement.values(**values).execution_options(synchronize_session=False)

        result = await self._execute(statement)
        return result.rowcount == 1

    async def count(self, **filters: Any) -> int:
        """
        Count records matching filters.

        Args:
            **filters: Field name to value filters

        Returns:
            Number of records matching the filters
        """
        query = select(func.count()).select_from(self.model)

        for field, value in filters.items():
            if hasattr(self.model, field):
                query = query.where(getattr(self.model, field) == value)

        result = await self._execute(query)
        return result.scalar() or 0

    async def exists(self, **filters: Any) -> bool:
        """
        Check if any records matching filters exist.

        Args:
            **filters: Field name to value filters

        Returns:
            True if at least one matching record exists
        """
        return await self.count(**filters) > 0

"""
Repository pattern implementation for SQLAlchemy.

This module provides the base repository the report, audit and timeout
repositories build on. Every session is opened with ``async with`` so its
connection goes back to the pool on success, validation failure or error, and
driver errors surface as ``QueryError`` with the original exception chained.
"""

import contextlib
from collections.abc import AsyncIterator, Sequence
from typing import Any, Generic, Optional, Type, TypeAlias, TypeVar

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from utils.exceptions import QueryError

# Type variables for generic repository
T = TypeVar("T")
ID = TypeVar("ID")

# Type aliases
EntityType: TypeAlias = Type[T]
SessionMaker: TypeAlias = async_sessionmaker[AsyncSession]


class BaseRepository(Generic[T, ID]):
    """Base repository for SQLAlchemy models.

    Attributes:
        session_maker: Factory creating database sessions.
        entity_type: The SQLAlchemy model class this repository manages.
    """

    def __init__(self, session_maker: SessionMaker, entity_type: EntityType):
        self.session_maker = session_maker
        self.entity_type = entity_type
        self.logger = structlog.get_logger(f"repositories.{entity_type.__tablename__}")

    @contextlib.asynccontextmanager
    async def session(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Open a session, translating driver errors into ``QueryError``.

        Args:
            operation: Short name of the operation, used in logs and the error.
        """
        async with self.session_maker() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                await session.rollback()
                self.logger.error(
                    "repository_query_failed",
                    operation=operation,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise QueryError(
                    message=f"Database operation {operation} on {self.entity_type.__tablename__} failed"
                ) from e

    async def get_by_id(self, entity_id: ID) -> Optional[T]:
        """Get an entity by its ID.

        Returns:
            The entity if found, None otherwise.
        """
        async with self.session("get_by_id") as session:
            return await session.get(self.entity_type, entity_id)

    async def get_all(self, *order_by: Any) -> Sequence[T]:
        """Get all entities, optionally ordered."""
        async with self.session("get_all") as session:
            stmt = select(self.entity_type)
            if order_by:
                stmt = stmt.order_by(*order_by)
            result = await session.execute(stmt)
            return result.scalars().all()

    async def count(self, *criteria: Any) -> int:
        """Count entities matching optional WHERE criteria."""
        async with self.session("count") as session:
            stmt = select(func.count()).select_from(self.entity_type)
            if criteria:
                stmt = stmt.where(*criteria)
            result = await session.execute(stmt)
            return result.scalar_one()

    async def create(self, entity: T) -> T:
        """Insert ``entity`` and return it with server defaults populated."""
        async with self.session("create") as session:
            session.add(entity)
            await session.commit()
            await session.refresh(entity)
            return entity

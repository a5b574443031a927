"""Data access layer."""
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bizdir.config import settings
from bizdir.repositories.base import QueryRepository
from bizdir.repositories.memory import InMemoryQueryRepository
from bizdir.repositories.sql import SqlQueryRepository

__all__ = [
    "QueryRepository",
    "SqlQueryRepository",
    "InMemoryQueryRepository",
    "get_repository",
]


def get_repository(
    backend: str | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> QueryRepository:
    """Build the configured repository implementation."""
    backend = backend or settings.repository_backend
    if backend == "memory":
        return InMemoryQueryRepository()
    if backend == "sql":
        return SqlQueryRepository(session_factory)
    raise ValueError(f"Unknown repository backend '{backend}'")

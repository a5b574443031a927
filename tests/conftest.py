# tests/conftest.py : shared fixtures for repository and service tests

import os

os.environ.setdefault("CACHE_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timedelta
from decimal import Decimal
import itertools

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from bizdir.cart import CartStore, MemorySlot
from bizdir.database import create_tables
from bizdir.repositories import InMemoryQueryRepository, SqlQueryRepository

TEST_DATABASE_URL = "sqlite+aiosqlite://"
BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


def make_engine():
    """In-memory SQLite engine shared by every session of one test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


@pytest.fixture
async def db_engine():
    """SQLite engine with every table created"""
    engine = make_engine()
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
def sql_repository(session_factory):
    return SqlQueryRepository(session_factory, allow_claim_override=False)


@pytest.fixture(params=["sql", "memory"])
async def repository(request):
    """Each contract test runs against both backends"""
    if request.param == "memory":
        yield InMemoryQueryRepository(allow_claim_override=False)
        return

    engine = make_engine()
    await create_tables(engine)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    yield SqlQueryRepository(factory, allow_claim_override=False)
    await engine.dispose()


class DirectoryBuilder:
    """Creates rows with sensible defaults and strictly increasing timestamps"""

    def __init__(self, repository):
        self.repository = repository
        self._counter = itertools.count(1)

    def _next(self) -> int:
        return next(self._counter)

    def _timestamp(self, n: int) -> datetime:
        return BASE_TIME + timedelta(minutes=n)

    async def profile(self, **fields):
        n = self._next()
        fields.setdefault("email", f"user{n}@example.com")
        fields.setdefault("full_name", f"User {n}")
        return (await self.repository.create_profile(fields)).unwrap()

    async def category(self, name: str, **fields):
        return (await self.repository.create_category({"name": name, **fields})).unwrap()

    async def business(self, name: str, **fields):
        n = self._next()
        fields.setdefault("address", f"Hoogstraat {n}")
        fields.setdefault("postal_code", "3111 HG")
        fields.setdefault("created_at", self._timestamp(n))
        return (await self.repository.create_business({"name": name, **fields})).unwrap()

    async def product(self, business_id, name: str = "Haring", **fields):
        n = self._next()
        fields.setdefault("price", Decimal("8.50"))
        fields.setdefault("stock", 10)
        fields.setdefault("created_at", self._timestamp(n))
        return (await self.repository.create_product({"business_id": business_id, "name": name, **fields})).unwrap()

    async def review(self, business_id, user_id, rating: int, **fields):
        n = self._next()
        fields.setdefault("created_at", self._timestamp(n))
        return (
            await self.repository.create_review(
                {"business_id": business_id, "user_id": user_id, "rating": rating, **fields}
            )
        ).unwrap()

    async def order(self, business_id, customer_id, total_amount="10.00", **fields):
        n = self._next()
        fields.setdefault("created_at", self._timestamp(n))
        return (
            await self.repository.create_order(
                {
                    "business_id": business_id,
                    "customer_id": customer_id,
                    "total_amount": Decimal(total_amount),
                    **fields,
                }
            )
        ).unwrap()


@pytest.fixture
def build(repository):
    return DirectoryBuilder(repository)


@pytest.fixture
def slot():
    return MemorySlot()


@pytest.fixture
def cart(slot):
    return CartStore(slot, key="test-cart")

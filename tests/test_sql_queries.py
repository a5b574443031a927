# tests/test_sql_queries.py : statements issued by the SQL repository

import pytest
from sqlalchemy import event

from bizdir.repositories import InMemoryQueryRepository, SqlQueryRepository, get_repository

MALICIOUS_SEARCH = "'; DROP TABLE businesses; --"


@pytest.fixture
def statements(db_engine):
    """Every (statement, parameters) pair sent to the database"""
    captured = []

    def capture(conn, cursor, statement, parameters, context, executemany):
        captured.append((statement, parameters))

    event.listen(db_engine.sync_engine, "before_cursor_execute", capture)
    yield captured
    event.remove(db_engine.sync_engine, "before_cursor_execute", capture)


async def create_business(repository, name, **fields):
    fields.setdefault("address", "Hoogstraat 1")
    fields.setdefault("postal_code", "3111 HG")
    return (await repository.create_business({"name": name, **fields})).unwrap()


class TestSearchBinding:
    async def test_search_text_is_a_bound_parameter(self, sql_repository, statements):
        await create_business(sql_repository, "De Gouden Leeuw")
        statements.clear()

        result = await sql_repository.list_businesses({"search": MALICIOUS_SEARCH})

        assert result.ok, result.error
        assert result.data == []
        assert not any(MALICIOUS_SEARCH in statement for statement, _ in statements)
        assert any(
            MALICIOUS_SEARCH in str(value) for _, parameters in statements for value in parameters
        )

    async def test_tables_survive_hostile_search(self, sql_repository):
        await create_business(sql_repository, "De Gouden Leeuw")

        await sql_repository.list_businesses({"search": MALICIOUS_SEARCH})

        assert len((await sql_repository.list_businesses()).data) == 1

    async def test_wildcards_match_literally(self, sql_repository):
        await create_business(sql_repository, "100% Biologisch")
        await create_business(sql_repository, "Bakkerij")

        result = await sql_repository.list_businesses({"search": "%"})

        assert [business.name for business in result.data] == ["100% Biologisch"]


class TestClaimStatement:
    async def _claim_update(self, repository, statements):
        owner = (await repository.create_profile({"email": "eigenaar@example.com"})).unwrap()
        business = await create_business(repository, "Cafe Central")
        statements.clear()

        result = await repository.claim_business(business.id, owner.id)

        updates = [statement for statement, _ in statements if statement.lstrip().upper().startswith("UPDATE")]
        return result, updates

    async def test_claim_is_one_guarded_update(self, sql_repository, statements):
        result, updates = await self._claim_update(sql_repository, statements)

        assert result.ok, result.error
        assert len(updates) == 1
        where = updates[0].upper().split("WHERE", 1)[1]
        assert "CLAIMED" in where

    async def test_override_drops_the_guard(self, session_factory, statements):
        repository = SqlQueryRepository(session_factory, allow_claim_override=True)

        result, updates = await self._claim_update(repository, statements)

        assert result.ok, result.error
        assert len(updates) == 1
        where = updates[0].upper().split("WHERE", 1)[1]
        assert "CLAIMED" not in where

    async def test_override_transfers_ownership(self, session_factory):
        repository = SqlQueryRepository(session_factory, allow_claim_override=True)
        first = (await repository.create_profile({"email": "eerste@example.com"})).unwrap()
        second = (await repository.create_profile({"email": "tweede@example.com"})).unwrap()
        business = await create_business(repository, "Cafe Central", owner_id=first.id)

        result = await repository.claim_business(business.id, second.id)

        assert result.data.owner_id == second.id
        assert result.data.claimed is True


class TestRepositoryFactory:
    def test_memory_backend(self):
        assert isinstance(get_repository("memory"), InMemoryQueryRepository)

    def test_sql_backend(self, session_factory):
        assert isinstance(get_repository("sql", session_factory), SqlQueryRepository)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            get_repository("mongo")

"""Test the PostgreSQL connector against an in-process asyncpg stand-in."""

import asyncpg
import pytest

from fakes import FakePgDatabase, FakePgPool
from skeet.connectors.postgres import PostgresConnector
from skeet.errors import ServiceNotInitialized, UnknownResource, UpstreamQueryError
from skeet.models import ConnectionDescriptor, ServiceConfig


class FakePgError(asyncpg.PostgresError):
    def __str__(self):
        return self.args[0]


@pytest.fixture
def db():
    return FakePgDatabase()


@pytest.fixture
def pools(monkeypatch, db):
    created = []

    async def create_pool(dsn, **kwargs):
        if "unreachable" in dsn:
            raise OSError("could not connect to server")
        pool = FakePgPool(dsn, db, **kwargs)
        created.append(pool)
        return pool

    monkeypatch.setattr("skeet.connectors.postgres.asyncpg.create_pool", create_pool)
    return created


async def _connector(url="postgresql://db/app", **config):
    connector = PostgresConnector(ServiceConfig(enabled=True, connection_string=url, **config))
    assert await connector.initialize() is True
    return connector


@pytest.mark.asyncio
async def test_query_returns_rows_as_dicts(pools, db):
    connector = await _connector()
    assert await connector.execute("postgres_query", {"sql": "SELECT * FROM t"}) == [
        {"id": 1, "name": "a"}, {"id": 2, "name": "b"},
    ]
    assert db.events == ["begin readonly=True", "SELECT * FROM t", "rollback"]


@pytest.mark.asyncio
async def test_write_statement_has_no_lasting_effect(pools, db):
    connector = await _connector()
    await connector.execute("postgres_query", {"sql": "DELETE FROM t"})
    assert db.rows == [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]
    assert len(await connector.execute("postgres_query", {"sql": "SELECT * FROM t"})) == 2
    assert db.events.count("rollback") == 2


@pytest.mark.asyncio
async def test_backend_error_surfaces_and_still_rolls_back(pools, db):
    connector = await _connector()
    db.error = FakePgError('relation "nope" does not exist')
    with pytest.raises(UpstreamQueryError, match='relation "nope" does not exist'):
        await connector.execute("postgres_query", {"sql": "SELECT * FROM nope"})
    assert db.events[-1] == "rollback"


@pytest.mark.asyncio
async def test_rollback_failure_does_not_mask_result(pools, db):
    connector = await _connector()
    db.fail_rollback = True
    rows = await connector.execute("postgres_query", {"sql": "SELECT * FROM t"})
    assert len(rows) == 2


@pytest.mark.asyncio
async def test_unreachable_server_reports_failure(pools):
    connector = PostgresConnector(ServiceConfig(enabled=True, connection_string="postgresql://unreachable/db"))
    assert await connector.initialize() is False
    assert connector.initialized is False
    assert connector.error.service == "postgres"
    assert "could not connect" in connector.error.reason
    assert pools == []


@pytest.mark.asyncio
async def test_missing_source_reports_failure(pools):
    connector = PostgresConnector(ServiceConfig(enabled=True))
    assert await connector.initialize() is False
    assert connector.error is not None


@pytest.mark.asyncio
async def test_descriptor_dsn_wins_over_url(pools):
    descriptor = ConnectionDescriptor(dsn="postgresql://primary/app", name="main", is_primary=True)
    await _connector(url="postgresql://fallback/app", connection=descriptor, options={"max_size": 2})
    assert pools[0].dsn == "postgresql://primary/app"
    assert pools[0].kwargs == {"min_size": 1, "max_size": 2}


@pytest.mark.asyncio
async def test_shutdown_closes_pool_once(pools):
    connector = await _connector()
    await connector.shutdown()
    await connector.shutdown()
    assert pools[0].close_count == 1
    with pytest.raises(ServiceNotInitialized, match="postgres service not initialized"):
        await connector.execute("postgres_query", {"sql": "SELECT 1"})


@pytest.mark.asyncio
async def test_query_before_initialize(pools):
    connector = PostgresConnector(ServiceConfig(enabled=True, connection_string="postgresql://db/app"))
    with pytest.raises(ServiceNotInitialized):
        await connector.execute("postgres_query", {"sql": "SELECT 1"})


@pytest.mark.asyncio
async def test_table_resources(pools):
    connector = await _connector()
    resources = await connector.list_resources()
    assert [r.uri for r in resources] == ["skeet://postgres/tables/t", "skeet://postgres/tables/users"]
    assert await connector.read_resource("tables/users") == [{"column_name": "id", "data_type": "integer"}]
    with pytest.raises(UnknownResource):
        await connector.read_resource("views/users")


@pytest.mark.parametrize("attr,error,message", [
    ("error", asyncpg.InterfaceError("connection is closed"), "connection is closed"),
    ("start_error", asyncpg.InterfaceError("cannot start transaction"), "cannot start transaction"),
    ("acquire_error", ConnectionResetError("connection reset by peer"), "connection reset by peer"),
])
@pytest.mark.asyncio
async def test_connection_failures_surface_as_upstream_errors(pools, db, attr, error, message):
    connector = await _connector()
    setattr(db, attr, error)
    with pytest.raises(UpstreamQueryError, match=message):
        await connector.execute("postgres_query", {"sql": "SELECT * FROM t"})

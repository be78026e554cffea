"""PostgreSQL connector — every query runs in a rolled-back read-only transaction."""

from __future__ import annotations

import logging
from typing import Any

import asyncpg

from skeet.connectors.base import ServiceConnector, ToolHandler, require_text, split_resource_path
from skeet.errors import UpstreamQueryError
from skeet.models import ServiceConfig
from skeet.tools import ResourceDeclaration, ToolDeclaration, ToolParameter
from skeet.types import ServiceKind

logger = logging.getLogger(__name__)

# Driver failures reported to the caller as upstream errors
DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class PostgresConnector(ServiceConnector):
    kind = ServiceKind.POSTGRES
    TOOLS = (
        ToolDeclaration(
            name="postgres_query",
            description="Run a read-only SQL query against PostgreSQL",
            parameters=(ToolParameter(name="sql", type="string", required=True),),
        ),
    )

    def __init__(self, config: ServiceConfig) -> None:
        super().__init__(config)
        self._pool: asyncpg.Pool | None = None

    async def _connect(self, dsn: str) -> None:
        self._pool = await asyncpg.create_pool(
            dsn,
            min_size=int(self.config.options.get("min_size", 1)),
            max_size=int(self.config.options.get("max_size", 5)),
        )

    async def _probe(self) -> None:
        await self._pool.fetchval("SELECT 1")

    async def _close(self) -> None:
        if self._pool:
            pool, self._pool = self._pool, None
            await pool.close()

    def _handlers(self) -> dict[str, ToolHandler]:
        return {"postgres_query": self.query}

    async def query(self, sql: str) -> list[dict[str, Any]]:
        require_text(sql, "sql")
        self._require_initialized()
        try:
            async with self._pool.acquire() as conn:
                tx = conn.transaction(readonly=True)
                await tx.start()
                try:
                    rows = await conn.fetch(sql)
                finally:
                    try:
                        await tx.rollback()
                    except Exception as e:
                        logger.warning("Could not roll back transaction: %s", e)
        except DRIVER_ERRORS as e:
            raise UpstreamQueryError(str(e) or type(e).__name__) from e
        return [dict(r) for r in rows]

    async def list_resources(self) -> list[ResourceDeclaration]:
        self._require_initialized()
        rows = await self._pool.fetch(
            "SELECT table_name FROM information_schema.tables WHERE table_schema = 'public' ORDER BY table_name"
        )
        return [
            ResourceDeclaration(
                uri=self.resource_uri(f"tables/{r['table_name']}"),
                name=f"{r['table_name']} table schema",
                description="Columns and types of a PostgreSQL table",
            )
            for r in rows
        ]

    async def read_resource(self, path: str) -> list[dict[str, Any]]:
        table = split_resource_path(path, "tables")
        self._require_initialized()
        rows = await self._pool.fetch(
            """
            SELECT column_name, data_type
            FROM information_schema.columns
            WHERE table_schema = 'public' AND table_name = $1
            ORDER BY ordinal_position
            """,
            table,
        )
        return [dict(r) for r in rows]

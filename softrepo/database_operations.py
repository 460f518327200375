from typing import Any

import asyncpg

from softrepo.query_tracking import log_query


class DatabaseOperations:
    """Executes statements on one connection, logging them to the query tracker"""

    def __init__(self, connection: asyncpg.Connection):
        self.connection = connection

    async def fetch_all(self, query: str, params: list[Any]) -> list[asyncpg.Record]:
        log_query(query, params)
        return await self.connection.fetch(query, *params)

    async def fetch_one(self, query: str, params: list[Any]) -> asyncpg.Record | None:
        log_query(query, params)
        return await self.connection.fetchrow(query, *params)

    async def fetch_value(self, query: str, params: list[Any]) -> Any:
        log_query(query, params)
        return await self.connection.fetchval(query, *params)

    async def execute_query(self, query: str, params: list[Any]) -> str:
        """Execute a statement and return its status string, e.g. ``UPDATE 1``"""
        log_query(query, params)
        return await self.connection.execute(query, *params)

"""Test doubles standing in for an asyncpg connection"""

from typing import Any


class RecordingConnection:
    """Records every statement; returns canned rows or raises a canned error"""

    def __init__(
        self,
        rows: list[dict[str, Any]] | None = None,
        error: BaseException | None = None,
        affected: int = 1,
    ):
        self.rows = rows or []
        self.error = error
        self.affected = affected
        self.statements: list[tuple[str, tuple[Any, ...]]] = []

    def _record(self, query: str, params: tuple[Any, ...]):
        self.statements.append((query, params))
        if self.error is not None:
            raise self.error

    @property
    def queries(self) -> list[str]:
        return [query for query, _ in self.statements]

    async def fetch(self, query: str, *params: Any) -> list[dict[str, Any]]:
        self._record(query, params)
        return list(self.rows)

    async def fetchrow(self, query: str, *params: Any) -> dict[str, Any] | None:
        self._record(query, params)
        return self.rows[0] if self.rows else None

    async def fetchval(self, query: str, *params: Any) -> Any:
        self._record(query, params)
        return len(self.rows)

    async def execute(self, query: str, *params: Any) -> str:
        self._record(query, params)
        return f"{query.split()[0]} {self.affected}"

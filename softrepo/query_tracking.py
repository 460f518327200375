import traceback
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass
class QueryLog:
    """Represents a logged query"""

    query: str
    params: list[Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    stack_trace: str | None = None


class QueryTracker:
    """Tracks queries executed during a context"""

    def __init__(self):
        self.queries: list[QueryLog] = []
        self._enabled: bool = False

    def enable(self):
        self._enabled = True

    def disable(self):
        self._enabled = False

    def is_enabled(self) -> bool:
        return self._enabled

    def log_query(self, query: str, params: list[Any], stack_trace: str | None = None):
        """Record a query if tracking is enabled"""
        if self._enabled:
            self.queries.append(
                QueryLog(query=query, params=list(params), stack_trace=stack_trace)
            )

    def get_queries(self) -> list[QueryLog]:
        return self.queries.copy()

    def find(self, fragment: str) -> list[QueryLog]:
        """Logged queries whose SQL contains the given fragment"""
        return [log for log in self.queries if fragment in log.query]

    def clear(self):
        self.queries.clear()

    def count(self) -> int:
        return len(self.queries)

    def to_dict(self) -> list[dict[str, Any]]:
        return [
            {
                "query": log.query,
                "params": log.params,
                "timestamp": log.timestamp.isoformat(),
                "stack_trace": log.stack_trace,
            }
            for log in self.queries
        ]


_query_tracker: ContextVar[QueryTracker | None] = ContextVar(
    "query_tracker", default=None
)


def get_query_tracker() -> QueryTracker | None:
    return _query_tracker.get()


def log_query(query: str, params: list[Any]):
    """Log a query to the current query tracker if available"""
    tracker = _query_tracker.get()
    if tracker:
        # Skip this frame and the DatabaseOperations frame
        stack = traceback.extract_stack()[:-2]
        tracker.log_query(query, params, "".join(traceback.format_list(stack)))

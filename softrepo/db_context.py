from contextlib import asynccontextmanager
from contextvars import ContextVar
from functools import wraps

import asyncpg

from softrepo.query_tracking import QueryTracker, _query_tracker, get_query_tracker
from softrepo.session import Session

# Session of the outermost transaction in the current context (only one per context)
_current_session: ContextVar[Session | None] = ContextVar("current_session", default=None)
_db_pools: dict[str, asyncpg.Pool] = {}


class DatabaseManager:
    """Manages database pools and the session of the current transaction"""

    @classmethod
    async def add_pool(cls, name: str, pool: asyncpg.Pool):
        """Add a database pool with a name"""
        _db_pools[name] = pool

    @classmethod
    async def get_pool(cls, name: str = "default") -> asyncpg.Pool:
        """Get a database pool by name"""
        if name not in _db_pools:
            raise ValueError(f"Database pool '{name}' not found")
        return _db_pools[name]

    @classmethod
    def get_current_session(cls) -> Session | None:
        """Get the session of the active transaction, if any"""
        return _current_session.get()

    @classmethod
    def get_current_connection(cls) -> asyncpg.Connection | None:
        session = _current_session.get()
        return session.connection if session else None

    @classmethod
    def get_query_tracker(cls) -> QueryTracker | None:
        return get_query_tracker()

    @classmethod
    @asynccontextmanager
    async def transaction(cls, db_name: str = "default", track_queries: bool = False):
        """Context manager for database transactions.

        Behavior:
        - Outside any transaction it acquires a connection from the pool, opens a
          transaction and a new Session (row filters at their defaults, empty
          identity map). Pending writes are flushed before commit.
        - Inside an existing transaction it opens a savepoint on the same
          connection and yields the same Session, so filter state and the
          identity map are shared with the enclosing unit of work.
        - The connection always goes back to the pool on exit.

        Args:
            db_name: Name of the database pool to use
            track_queries: Whether to enable query tracking for this transaction
        """
        current_session = _current_session.get()

        if current_session:
            await current_session.flush()
            try:
                async with current_session.connection.transaction():
                    yield current_session
                    await current_session.flush()
            except BaseException:
                # Unflushed writes belong to the rolled back savepoint
                current_session.discard_pending()
                raise
            return

        pool = await cls.get_pool(db_name)
        async with pool.acquire() as conn, conn.transaction():
            session = Session(conn)
            session_token = _current_session.set(session)

            tracker_token = None
            if track_queries and not _query_tracker.get():
                tracker = QueryTracker()
                tracker.enable()
                tracker_token = _query_tracker.set(tracker)

            try:
                yield session
                await session.flush()
            finally:
                _current_session.reset(session_token)
                if tracker_token:
                    _query_tracker.reset(tracker_token)

    @classmethod
    @asynccontextmanager
    async def track_queries(cls):
        """Context manager for query tracking inside a transaction.

        async with DatabaseManager.transaction():
            async with DatabaseManager.track_queries() as tracker:
                await repo.find_by_id(some_id)
                queries = tracker.get_queries()
        """
        current_tracker = _query_tracker.get()

        if current_tracker:
            was_enabled = current_tracker.is_enabled()
            current_tracker.enable()
            try:
                yield current_tracker
            finally:
                if not was_enabled:
                    current_tracker.disable()
        else:
            tracker = QueryTracker()
            tracker.enable()
            token = _query_tracker.set(tracker)
            try:
                yield tracker
            finally:
                _query_tracker.reset(token)


def transactional(db_name: str = "default", query_logs: bool = False):
    """Decorator to run a coroutine within a database transaction.

    Args:
        db_name: Name of the database pool to use
        query_logs: Whether to enable query tracking for this transaction

    Example:
        @transactional(query_logs=True)
        async def archive_article(article_id):
            await article_repo.soft_delete_by_id(article_id)
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            async with DatabaseManager.transaction(db_name, track_queries=query_logs):
                return await func(*args, **kwargs)

        return wrapper

    return decorator

from contextvars import Token

import asyncpg
import pytest
import pytest_asyncio
from testcontainers.postgres import PostgresContainer

from softrepo.db_context import DatabaseManager, _current_session
from softrepo.repository import Repository, RepositoryConfig
from softrepo.session import Session
from softrepo.soft_delete_repository import SoftDeleteRepository
from tests.entities import (
    Article,
    ArticleUpdate,
    Comment,
    CommentUpdate,
    Invoice,
    InvoiceUpdate,
    Post,
    PostUpdate,
)
from tests.fakes import RecordingConnection

SCHEMA = """
CREATE TABLE IF NOT EXISTS posts (
    id UUID PRIMARY KEY,
    title VARCHAR(255) NOT NULL,
    content TEXT NOT NULL,
    published BOOLEAN NOT NULL DEFAULT FALSE,
    category VARCHAR(100)
);
CREATE TABLE IF NOT EXISTS articles (
    id UUID PRIMARY KEY,
    title VARCHAR(255) NOT NULL,
    body TEXT NOT NULL DEFAULT '',
    category VARCHAR(100),
    deleted_at TIMESTAMP WITH TIME ZONE
);
CREATE TABLE IF NOT EXISTS comments (
    id UUID PRIMARY KEY,
    article_id UUID NOT NULL REFERENCES articles (id),
    body TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS invoices (
    id UUID PRIMARY KEY,
    number VARCHAR(50) NOT NULL,
    amount NUMERIC(10, 2) NOT NULL,
    removed_at TIMESTAMP WITH TIME ZONE
);
CREATE SCHEMA IF NOT EXISTS app;
CREATE TABLE IF NOT EXISTS app.articles (
    id UUID PRIMARY KEY,
    title VARCHAR(255) NOT NULL,
    body TEXT NOT NULL DEFAULT '',
    category VARCHAR(100),
    deleted_at TIMESTAMP WITH TIME ZONE
);
"""


@pytest.fixture(scope="session")
def postgres_container():
    """Start a PostgreSQL test container for the session."""
    with PostgresContainer("postgres:17") as postgres:
        yield postgres


@pytest_asyncio.fixture
async def test_db_pool(postgres_container):
    """Create a pool on the test container, registered as ``test_db``."""
    host = postgres_container.get_container_host_ip()
    port = postgres_container.get_exposed_port(5432)
    dsn = f"postgresql://{postgres_container.username}:{postgres_container.password}@{host}:{port}/{postgres_container.dbname}"

    # A new pool per test avoids event loop issues
    pool = await asyncpg.create_pool(dsn, min_size=1, max_size=5)

    async with pool.acquire() as conn:
        await conn.execute(SCHEMA)

    await DatabaseManager.add_pool("test_db", pool)

    yield pool

    async with pool.acquire() as conn:
        await conn.execute(
            "TRUNCATE TABLE comments, articles, invoices, posts, app.articles;"
        )
    await pool.close()


@pytest.fixture
def article_repo():
    return SoftDeleteRepository(Article, ArticleUpdate, "articles")


@pytest.fixture
def app_article_repo():
    return SoftDeleteRepository(
        Article, ArticleUpdate, "articles", RepositoryConfig(db_schema="app")
    )


@pytest.fixture
def invoice_repo():
    return SoftDeleteRepository(Invoice, InvoiceUpdate, "invoices")


@pytest.fixture
def comment_repo():
    return Repository(Comment, CommentUpdate, "comments")


@pytest.fixture
def post_repo():
    return Repository(Post, PostUpdate, "posts")


@pytest.fixture
def fake_connection():
    return RecordingConnection()


@pytest.fixture
def fake_session(fake_connection):
    """A session over a recording connection, installed as the current session."""
    session = Session(fake_connection)
    token: Token = _current_session.set(session)
    yield session
    _current_session.reset(token)

"""
Tests for the soft delete marker contract, column resolution and settings.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from softrepo.entities import SortOrder
from softrepo.entity_mapper import EntityMapper
from softrepo.query_builder import QueryBuilder
from softrepo.session import Session
from softrepo.settings import DEFAULT_COLUMN_NAME, SoftDeleteSettings, get_settings
from softrepo.soft_deletable import (
    SoftDeletable,
    SoftDeletableEntity,
    is_soft_deletable,
    resolve_soft_delete_column,
    soft_delete_column,
)
from softrepo.soft_delete_repository import SoftDeleteRepository
from tests.entities import Article, Invoice, InvoiceExample, InvoiceSort, InvoiceUpdate, Post, PostUpdate


@pytest.fixture
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestMarker:
    def test_new_entity_is_active(self):
        article = Article(title="Fresh")
        assert article.deleted_at is None
        assert not article.is_deleted

    def test_mark_deleted_uses_current_time(self):
        article = Article(title="Old")
        before = datetime.now(UTC)

        article.mark_deleted()

        assert article.is_deleted
        assert before <= article.deleted_at <= datetime.now(UTC)

    def test_mark_deleted_with_explicit_timestamp(self):
        article = Article(title="Old")
        yesterday = datetime.now(UTC) - timedelta(days=1)

        article.mark_deleted(yesterday)

        assert article.get_marker() == yesterday

    def test_clear_deleted(self):
        article = Article(title="Old")
        article.set_marker(datetime.now(UTC))

        article.clear_deleted()

        assert article.get_marker() is None
        assert not article.is_deleted

    def test_marker_is_validated(self):
        article = Article(title="Old")
        with pytest.raises(ValidationError):
            article.deleted_at = "not a timestamp"

    def test_protocol(self):
        assert isinstance(Article(title="x"), SoftDeletable)
        assert not isinstance(Post(title="x", content="y"), SoftDeletable)

    def test_is_soft_deletable(self):
        assert is_soft_deletable(Article)
        assert is_soft_deletable(Invoice)
        assert not is_soft_deletable(Post)
        assert not is_soft_deletable(Article(title="instance"))


class TestColumnOverride:
    def test_decorator_sets_column(self):
        assert Invoice.__soft_delete_column__ == "removed_at"
        assert Article.__soft_delete_column__ is None

    def test_empty_column_name_rejected(self):
        with pytest.raises(ValueError, match="must not be empty"):
            soft_delete_column("")

    def test_non_soft_deletable_entity_rejected(self):
        with pytest.raises(TypeError, match="must extend SoftDeletableEntity"):
            soft_delete_column("removed_at")(Post)

    def test_override_does_not_leak_to_siblings(self):
        @soft_delete_column("archived_at")
        class Note(SoftDeletableEntity):
            text: str

        assert resolve_soft_delete_column(Note) == "archived_at"
        assert SoftDeletableEntity.__soft_delete_column__ is None


class TestColumnResolution:
    def test_defaults(self, fresh_settings):
        assert resolve_soft_delete_column(Article) == DEFAULT_COLUMN_NAME
        assert resolve_soft_delete_column(Invoice) == "removed_at"
        assert resolve_soft_delete_column(Post) is None

    def test_explicit_settings(self):
        settings = SoftDeleteSettings(column_name="trashed_at")

        assert resolve_soft_delete_column(Article, settings) == "trashed_at"
        assert resolve_soft_delete_column(Invoice, settings) == "removed_at"

    def test_environment(self, fresh_settings, monkeypatch):
        monkeypatch.setenv("SOFT_DELETE_COLUMN_NAME", "gone_at")
        get_settings.cache_clear()

        assert get_settings().column_name == "gone_at"
        assert resolve_soft_delete_column(Article) == "gone_at"
        assert resolve_soft_delete_column(Invoice) == "removed_at"

    def test_settings_are_cached(self, fresh_settings):
        assert get_settings() is get_settings()

    def test_settings_validation(self):
        with pytest.raises(ValidationError):
            SoftDeleteSettings(column_name="")

    def test_settings_are_frozen(self):
        settings = SoftDeleteSettings()
        with pytest.raises(ValidationError):
            settings.column_name = "other"


class TestMapping:
    def test_example_and_sort_use_custom_column(self):
        invoices = SoftDeleteRepository(Invoice, InvoiceUpdate, "invoices")

        matched = invoices.matching(
            InvoiceExample(number="INV-1"), InvoiceSort(deleted_at=SortOrder.DESC)
        )

        assert matched.to_sql() == (
            "SELECT * FROM invoices WHERE number = $1 ORDER BY removed_at DESC"
        )

    def test_custom_column_in_rows(self):
        mapper = EntityMapper(Invoice, "invoices")
        invoice = Invoice(number="INV-1", amount=Decimal("12.50"))
        invoice.mark_deleted()

        row = mapper.to_row(invoice)

        assert row["removed_at"] == invoice.deleted_at
        assert "deleted_at" not in row
        assert mapper.column_for("deleted_at") == "removed_at"
        assert mapper.field_columns == {"deleted_at": "removed_at"}

    def test_custom_column_from_rows(self):
        mapper = EntityMapper(Invoice, "invoices")
        removed = datetime.now(UTC)
        invoice_id = uuid4()

        invoice = mapper.map_row_to_entity(
            {"id": invoice_id, "number": "INV-1", "amount": Decimal("1.00"), "removed_at": removed}
        )

        assert invoice.id == invoice_id
        assert invoice.deleted_at == removed
        assert invoice.is_deleted

    def test_default_column_needs_no_translation(self):
        mapper = EntityMapper(Article, "articles")
        assert mapper.field_columns == {}
        assert mapper.column_for("deleted_at") == "deleted_at"

    def test_settings_column_flows_into_filter(self):
        mapper = EntityMapper(Article, "articles", settings=SoftDeleteSettings(column_name="trashed_at"))

        query = Session(None).apply_filters(mapper, QueryBuilder("articles")).to_sql()

        assert query == "SELECT * FROM articles WHERE trashed_at IS NULL"
        assert "trashed_at" in mapper.to_row(Article(title="x"))

    def test_schema_and_metadata(self):
        mapper = EntityMapper(Article, "articles", db_schema="app")
        article_id = uuid4()

        assert mapper.qualified_table_name == "app.articles"
        assert mapper.identity_key(article_id) == ("app.articles", str(article_id))
        assert mapper.row_filters == ("soft_delete",)
        assert EntityMapper(Post, "posts").row_filters == ()
        assert EntityMapper(Post, "posts").soft_delete_column is None

    def test_soft_delete_repository_rejects_plain_entities(self):
        with pytest.raises(TypeError, match="Post is not a SoftDeletableEntity"):
            SoftDeleteRepository(Post, PostUpdate, "posts")

"""Soft delete marker contract.

A soft-deletable record carries a nullable ``deleted_at`` timestamp. While it
is ``None`` the record is active; once set the record is trashed and the
``soft_delete`` row filter hides it from standard queries.

    class Article(SoftDeletableEntity):
        title: str

    @soft_delete_column("removed_at")
    class Invoice(SoftDeletableEntity):
        number: str

The column defaults to ``deleted_at`` and can be changed globally with the
``SOFT_DELETE_COLUMN_NAME`` setting. A per-entity ``@soft_delete_column``
wins over the global setting.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, ClassVar, Protocol, runtime_checkable

from softrepo.entities import BaseEntity
from softrepo.query_builder import QueryBuilder
from softrepo.row_filter import FilterDefinition, define_filter
from softrepo.settings import SoftDeleteSettings, get_settings

if TYPE_CHECKING:
    from softrepo.entity_mapper import EntityMapper

SOFT_DELETE_FILTER = "soft_delete"
MARKER_FIELD = "deleted_at"


@runtime_checkable
class SoftDeletable(Protocol):
    """Anything exposing a nullable deletion timestamp"""

    deleted_at: datetime | None

    @property
    def is_deleted(self) -> bool: ...


class SoftDeletableEntity(BaseEntity):
    """Base entity for records that are trashed instead of deleted."""

    __row_filters__: ClassVar[tuple[str, ...]] = (SOFT_DELETE_FILTER,)
    __soft_delete_column__: ClassVar[str | None] = None

    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        """True once the record has been soft deleted"""
        return self.deleted_at is not None

    def get_marker(self) -> datetime | None:
        return self.deleted_at

    def set_marker(self, deleted_at: datetime | None) -> None:
        self.deleted_at = deleted_at

    def mark_deleted(self, timestamp: datetime | None = None) -> None:
        """Set the deletion marker, defaulting to the current UTC time"""
        self.deleted_at = timestamp or datetime.now(UTC)

    def clear_deleted(self) -> None:
        self.deleted_at = None


def soft_delete_column(column_name: str):
    """Class decorator overriding the soft delete column for one entity."""
    if not column_name:
        raise ValueError("column_name must not be empty")

    def decorator[E: SoftDeletableEntity](entity_class: type[E]) -> type[E]:
        if not is_soft_deletable(entity_class):
            raise TypeError(
                f"{entity_class.__name__} must extend SoftDeletableEntity to use soft_delete_column"
            )
        entity_class.__soft_delete_column__ = column_name
        return entity_class

    return decorator


def is_soft_deletable(entity_class: type) -> bool:
    """Whether repositories for this entity type get soft delete semantics"""
    return isinstance(entity_class, type) and issubclass(entity_class, SoftDeletableEntity)


def resolve_soft_delete_column(
    entity_class: type, settings: SoftDeleteSettings | None = None
) -> str | None:
    """Return the marker column for an entity, or None if it is not soft-deletable"""
    if not is_soft_deletable(entity_class):
        return None
    override = entity_class.__soft_delete_column__
    if override:
        return override
    return (settings or get_settings()).column_name


def _exclude_trashed(builder: QueryBuilder, mapper: "EntityMapper") -> QueryBuilder:
    return builder.restrict(mapper.soft_delete_column, None)


define_filter(
    FilterDefinition(
        name=SOFT_DELETE_FILTER,
        condition=_exclude_trashed,
        enabled_by_default=True,
    )
)

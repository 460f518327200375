from typing import Any
from uuid import UUID

from pydantic import BaseModel

from softrepo.settings import SoftDeleteSettings
from softrepo.soft_deletable import MARKER_FIELD, resolve_soft_delete_column


class EntityMapper[T: BaseModel]:
    """Maps between database rows and entities for one table.

    Also carries the table metadata a session needs: the qualified table name,
    the soft delete column (if any) and the row filters the entity declares.
    """

    def __init__(
        self,
        entity_class: type[T],
        table_name: str,
        db_schema: str | None = None,
        settings: SoftDeleteSettings | None = None,
    ):
        self.entity_class = entity_class
        self.table_name = table_name
        self.qualified_table_name = f"{db_schema}.{table_name}" if db_schema else table_name
        self.soft_delete_column = resolve_soft_delete_column(entity_class, settings)
        self.row_filters: tuple[str, ...] = getattr(entity_class, "__row_filters__", ())

        self._field_to_column: dict[str, str] = {}
        if self.soft_delete_column and self.soft_delete_column != MARKER_FIELD:
            self._field_to_column[MARKER_FIELD] = self.soft_delete_column
        self._column_to_field = {v: k for k, v in self._field_to_column.items()}

    @property
    def field_columns(self) -> dict[str, str]:
        """Entity field names whose column name differs"""
        return dict(self._field_to_column)

    def column_for(self, field: str) -> str:
        return self._field_to_column.get(field, field)

    def identity_key(self, entity_id: Any) -> tuple[str, str]:
        return self.qualified_table_name, str(entity_id)

    def entity_id(self, entity: T) -> UUID:
        return entity.id  # type: ignore[attr-defined]

    def map_row_to_entity(self, row: Any) -> T:
        """Map database row to entity"""
        data = {self._column_to_field.get(k, k): v for k, v in dict(row).items()}
        return self.entity_class(**data)

    def to_row(self, entity: T) -> dict[str, Any]:
        """Column/value pairs for the fields declared on the entity class"""
        data = entity.model_dump()
        return {
            self.column_for(name): data[name]
            for name in self.entity_class.model_fields
            if name in data
        }

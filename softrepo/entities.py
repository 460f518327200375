from enum import Enum
from typing import ClassVar
from uuid import UUID, uuid4

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class Column[T]:
    """Type-safe column reference for use in repository criteria.

    Usage:
        class ArticleColumns(ColumnSet):
            title = Column[str]("title")
            category = Column[str]("category")

        repo.where(ArticleColumns.category, "news").find_all()
    """

    def __init__(self, column_name: str):
        """
        Args:
            column_name: The actual database column name
        """
        self._column_name = column_name

    @property
    def column(self) -> str:
        """Return the underlying database column name."""
        return self._column_name

    def __str__(self) -> str:
        return self._column_name

    def __repr__(self) -> str:
        return f"Column({self._column_name})"


class ColumnSet:
    """Namespace for grouping the typed columns of one table."""


class BaseEntity(BaseModel):
    """Base entity class for all database models."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        use_enum_values=True, extra="allow", validate_assignment=True
    )
    id: UUID = Field(default_factory=uuid4)


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"

"""Soft delete repositories for asyncpg and pydantic"""

from softrepo.db_context import DatabaseManager, transactional
from softrepo.entities import BaseEntity, Column, ColumnSet, SortOrder
from softrepo.exceptions import (
    DetachedEntityError,
    FilterNotDefinedError,
    NoActiveTransactionError,
    RepositoryError,
    StaleEntityError,
)
from softrepo.factory import RepositoryFactory, create_repository
from softrepo.repository import Repository, RepositoryConfig
from softrepo.row_filter import FilterDefinition, define_filter, filter_suspended
from softrepo.session import Session
from softrepo.settings import SoftDeleteSettings, get_settings
from softrepo.soft_deletable import (
    SOFT_DELETE_FILTER,
    SoftDeletable,
    SoftDeletableEntity,
    soft_delete_column,
)
from softrepo.soft_delete_repository import SoftDeleteRepository

__all__ = [
    "SOFT_DELETE_FILTER",
    "BaseEntity",
    "Column",
    "ColumnSet",
    "DatabaseManager",
    "DetachedEntityError",
    "FilterDefinition",
    "FilterNotDefinedError",
    "NoActiveTransactionError",
    "Repository",
    "RepositoryConfig",
    "RepositoryError",
    "RepositoryFactory",
    "Session",
    "SoftDeletable",
    "SoftDeletableEntity",
    "SoftDeleteRepository",
    "SoftDeleteSettings",
    "StaleEntityError",
    "SortOrder",
    "create_repository",
    "define_filter",
    "filter_suspended",
    "get_settings",
    "soft_delete_column",
    "transactional",
]

"""Chooses the repository implementation for an entity type.

Entities deriving from ``SoftDeletableEntity`` get a ``SoftDeleteRepository``;
everything else gets the plain ``Repository``. The choice is made once, when
the repository is built.
"""

import logging

from pydantic import BaseModel

from softrepo.repository import Repository, RepositoryConfig
from softrepo.soft_deletable import is_soft_deletable
from softrepo.soft_delete_repository import SoftDeleteRepository

logger = logging.getLogger(__name__)


def repository_class_for(entity_class: type[BaseModel]) -> type[Repository]:
    if is_soft_deletable(entity_class):
        return SoftDeleteRepository
    return Repository


def create_repository(
    entity_class: type[BaseModel],
    update_class: type[BaseModel],
    table_name: str,
    config: RepositoryConfig | None = None,
) -> Repository:
    """Build the repository matching the entity type"""
    repository_class = repository_class_for(entity_class)
    logger.debug(
        "Using %s for %s (%s)", repository_class.__name__, entity_class.__name__, table_name
    )
    return repository_class(entity_class, update_class, table_name, config)


class RepositoryFactory:
    """Builds repositories once per (entity type, table) and hands out the same instance.

    Usage:
        factory = RepositoryFactory(RepositoryConfig(db_schema="app"))
        articles = factory.get_repository(Article, ArticleUpdate, "articles")
    """

    def __init__(self, config: RepositoryConfig | None = None):
        self.config = config or RepositoryConfig()
        self._repositories: dict[tuple[type[BaseModel], str], Repository] = {}

    def get_repository(
        self,
        entity_class: type[BaseModel],
        update_class: type[BaseModel],
        table_name: str,
    ) -> Repository:
        key = (entity_class, table_name)
        repository = self._repositories.get(key)
        if repository is None:
            repository = create_repository(entity_class, update_class, table_name, self.config)
            self._repositories[key] = repository
        return repository

    def __len__(self) -> int:
        return len(self._repositories)

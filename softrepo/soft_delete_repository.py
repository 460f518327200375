"""Repository that trashes records instead of deleting them.

    repo = SoftDeleteRepository(Article, ArticleUpdate, "articles")

    await repo.delete(article)            # sets deleted_at
    await repo.find_all()                 # active articles only
    await repo.find_all_with_trashed()    # active and trashed
    await repo.find_all_trashed()         # trashed only
    await repo.restore(article)           # clears deleted_at
    await repo.force_delete(article)      # removes the row

Standard reads switch the session's soft delete filter on before running.
The trashed scopes and force deletes switch it off only for their own
duration with ``filter_suspended``, which puts it back on every exit path,
including errors and cancellation. Backend errors propagate unchanged once
the filter has been restored.
"""

import logging
from collections.abc import Iterable
from uuid import UUID

from pydantic import BaseModel

from softrepo.query_builder import QueryBuilder
from softrepo.repository import Repository, RepositoryConfig
from softrepo.row_filter import filter_suspended
from softrepo.session import Session
from softrepo.soft_deletable import SOFT_DELETE_FILTER, SoftDeletableEntity

logger = logging.getLogger(__name__)


class SoftDeleteRepository[T: SoftDeletableEntity, U: BaseModel](Repository[T, U]):
    """Repository with soft delete, restore, force delete and trashed scopes.

    Type Parameters:
        T: Soft-deletable entity type
        U: Update model type
    """

    def __init__(
        self,
        entity_class: type[T],
        update_class: type[U] | None = None,
        table_name: str | None = None,
        config: RepositoryConfig | None = None,
    ):
        super().__init__(entity_class, update_class, table_name, config)
        if self.entity_mapper.soft_delete_column is None:
            raise TypeError(f"{entity_class.__name__} is not a SoftDeletableEntity")

    def _filtered_session(self) -> Session:
        session = self._session()
        session.enable_filter(SOFT_DELETE_FILTER)
        return session

    def _only_trashed(self, builder: QueryBuilder) -> QueryBuilder:
        return builder.restrict(self.entity_mapper.soft_delete_column, "!=", None)

    # Standard reads exclude trashed records. find_all_by_id and the
    # *_by_example variants go through find_all, first and count.
    async def find_all(self) -> list[T]:
        self._filtered_session()
        return await super().find_all()

    async def first(self) -> T | None:
        self._filtered_session()
        return await super().first()

    async def count(self) -> int:
        self._filtered_session()
        return await super().count()

    async def find_by_id(self, entity_id: UUID) -> T | None:
        """Find an active entity by id.

        Runs a filtered SELECT instead of the identity map lookup, which would
        return a trashed entity already loaded in this session.
        """
        session = self._filtered_session()
        builder = (
            QueryBuilder(self.entity_mapper.qualified_table_name)
            .where("id", str(entity_id))
            .limit(1)
        )
        entities = await session.fetch_entities(self.entity_mapper, builder)
        return entities[0] if entities else None  # type: ignore[return-value]

    async def exists_by_id(self, entity_id: UUID) -> bool:
        return await self.find_by_id(entity_id) is not None

    # Deletes become soft deletes
    async def delete(self, entity: T) -> None:
        await self.soft_delete(entity)

    async def delete_by_id(self, entity_id: UUID) -> bool:
        return await self.soft_delete_by_id(entity_id)

    async def delete_all(self, entities: Iterable[T] | None = None) -> int:
        """Soft delete the given entities, or every active entity matching the criteria"""
        if entities is None:
            entities = await self.find_all()
        deleted = 0
        for entity in entities:
            await self.soft_delete(entity)
            deleted += 1
        return deleted

    # Soft delete
    async def soft_delete(self, entity: T) -> T:
        """Set the deletion marker to now and write it immediately.

        Soft deleting a trashed entity refreshes its timestamp.
        """
        entity.mark_deleted()
        session = self._session()
        managed = session.merge(self.entity_mapper, entity)
        await session.flush()
        logger.debug("Soft deleted %s %s", self.entity_class.__name__, entity.id)
        return managed  # type: ignore[return-value]

    async def soft_delete_by_id(self, entity_id: UUID) -> bool:
        """Soft delete by id, trashed or not; returns False if the id does not exist"""
        session = self._session()
        with filter_suspended(session, SOFT_DELETE_FILTER):
            entity = await session.load_by_id(self.entity_mapper, entity_id)
            if entity is None:
                return False
            await self.soft_delete(entity)  # type: ignore[arg-type]
            return True

    # Restore
    async def restore(self, entity: T) -> T:
        """Clear the deletion marker and write it immediately"""
        entity.clear_deleted()
        session = self._session()
        managed = session.merge(self.entity_mapper, entity)
        await session.flush()
        logger.debug("Restored %s %s", self.entity_class.__name__, entity.id)
        return managed  # type: ignore[return-value]

    async def restore_by_id(self, entity_id: UUID) -> T | None:
        """Restore by id; returns None if the id does not exist"""
        entity = await self.find_by_id_with_trashed(entity_id)
        if entity is None:
            return None
        return await self.restore(entity)

    # Force delete
    async def force_delete(self, entity: T) -> None:
        """Permanently remove the entity's row"""
        session = self._session()
        with filter_suspended(session, SOFT_DELETE_FILTER):
            session.remove(self.entity_mapper, self._attach(session, entity))
            await session.flush()
        logger.info("Force deleted %s %s", self.entity_class.__name__, entity.id)

    async def force_delete_by_id(self, entity_id: UUID) -> bool:
        """Permanently remove the row with this id; returns False if there is none"""
        session = self._session()
        with filter_suspended(session, SOFT_DELETE_FILTER):
            entity = await session.load_by_id(self.entity_mapper, entity_id)
            if entity is None:
                return False
            session.remove(self.entity_mapper, entity)
            await session.flush()
        logger.info("Force deleted %s %s", self.entity_class.__name__, entity_id)
        return True

    # Scopes reaching trashed records; all honour the current criteria
    async def find_all_with_trashed(self) -> list[T]:
        with filter_suspended(self._session(), SOFT_DELETE_FILTER):
            return await super().find_all()

    async def find_by_id_with_trashed(self, entity_id: UUID) -> T | None:
        session = self._session()
        with filter_suspended(session, SOFT_DELETE_FILTER):
            return await session.load_by_id(self.entity_mapper, entity_id)  # type: ignore[return-value]

    async def find_all_trashed(self) -> list[T]:
        session = self._session()
        with filter_suspended(session, SOFT_DELETE_FILTER):
            return await session.fetch_entities(  # type: ignore[return-value]
                self.entity_mapper, self._only_trashed(self._query())
            )

    async def count_with_trashed(self) -> int:
        with filter_suspended(self._session(), SOFT_DELETE_FILTER):
            return await super().count()

    async def count_trashed(self) -> int:
        session = self._session()
        with filter_suspended(session, SOFT_DELETE_FILTER):
            result = await session.fetch_value(
                self.entity_mapper, self._only_trashed(self._query()).for_count()
            )
        return result or 0

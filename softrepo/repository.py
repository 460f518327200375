"""Repository class"""

import copy
from collections.abc import Callable, Iterable
from typing import Any, Self
from uuid import UUID

from pydantic import BaseModel, Field

from softrepo.db_context import DatabaseManager
from softrepo.entity_mapper import EntityMapper
from softrepo.example_matcher import ExampleMatcher
from softrepo.exceptions import NoActiveTransactionError
from softrepo.filter_advice import advise_repository_methods
from softrepo.query_builder import QueryBuilder
from softrepo.query_tracking import QueryTracker, get_query_tracker
from softrepo.session import Session
from softrepo.settings import SoftDeleteSettings


class RepositoryConfig(BaseModel):
    """Configuration options for Repository"""

    model_config = {"arbitrary_types_allowed": True}

    db_schema: str | None = Field(default=None, description="Database schema name")
    settings: SoftDeleteSettings | None = Field(
        default=None,
        description="Soft delete settings; the global settings are used when omitted",
    )


@advise_repository_methods
class Repository[T: BaseModel, U: BaseModel]:
    """Generic CRUD repository over one table.

    Criteria are built fluently and every fluent call returns a new
    repository, so a configured instance can be shared:

        recent = repo.where("category", "news").order_by_desc("title").limit(5)
        articles = await recent.find_all()

    Deletes are permanent here; see ``SoftDeleteRepository`` for entities
    that should be trashed instead.

    Type Parameters:
        T: Entity type
        U: Update model type
    """

    def __init__(
        self,
        entity_class: type[T],
        update_class: type[U] | None = None,
        table_name: str | None = None,
        config: RepositoryConfig | None = None,
    ):
        if entity_class is None:
            raise ValueError("entity_class is required")
        if table_name is None:
            raise ValueError("table_name is required")
        if update_class is None:
            raise ValueError("update_class is required")

        self.entity_class = entity_class
        self.update_class = update_class
        self.table_name = table_name
        self.config = config or RepositoryConfig()
        self.entity_mapper: EntityMapper[T] = EntityMapper(
            entity_class, table_name, self.config.db_schema, self.config.settings
        )
        self._query_builder: QueryBuilder | None = None

    def __init_subclass__(cls, **kwargs: Any):
        super().__init_subclass__(**kwargs)
        advise_repository_methods(cls)

    @staticmethod
    def _session() -> Session:
        session = DatabaseManager.get_current_session()
        if session is None:
            raise NoActiveTransactionError()
        return session

    def _query(self) -> QueryBuilder:
        """The current criteria, or an unrestricted query on the table"""
        if self._query_builder is None:
            return QueryBuilder(self.entity_mapper.qualified_table_name)
        return self._query_builder

    def _refine(self, change: Callable[[QueryBuilder], QueryBuilder]) -> Self:
        new_repo = copy.copy(self)
        new_repo._query_builder = change(self._query())
        return new_repo

    def _attach(self, session: Session, entity: T) -> T:
        if session.contains(self.entity_mapper, entity):
            return entity
        return session.merge(self.entity_mapper, entity)  # type: ignore[return-value]

    # Fluent criteria, each returning a new repository instance
    def where(self, field: Any, *args: Any) -> Self:
        """Add a WHERE condition: where(field, value) or where(field, operator, value)"""
        return self._refine(lambda builder: builder.where(field, *args))

    def or_where(self, field: Any, *args: Any) -> Self:
        """Add an OR WHERE condition: or_where(field, value) or or_where(field, operator, value)"""
        return self._refine(lambda builder: builder.or_where(field, *args))

    def where_in(self, field: Any, values: list) -> Self:
        return self._refine(lambda builder: builder.where_in(field, values))

    def where_not_in(self, field: Any, values: list) -> Self:
        return self._refine(lambda builder: builder.where_not_in(field, values))

    def order_by(self, field: Any) -> Self:
        return self._refine(lambda builder: builder.order_by(field))

    def order_by_asc(self, field: Any) -> Self:
        return self._refine(lambda builder: builder.order_by_asc(field))

    def order_by_desc(self, field: Any) -> Self:
        return self._refine(lambda builder: builder.order_by_desc(field))

    def limit(self, count: int) -> Self:
        return self._refine(lambda builder: builder.limit(count))

    def offset(self, count: int) -> Self:
        return self._refine(lambda builder: builder.offset(count))

    def paginate(self, page: int, per_page: int = 10) -> Self:
        return self._refine(lambda builder: builder.paginate(page, per_page))

    def matching(self, example: BaseModel, sort: BaseModel | None = None) -> Self:
        """Add equality criteria for every field of the example that is set"""
        columns = self.entity_mapper.field_columns
        return self._refine(
            lambda builder: ExampleMatcher.apply_sort(
                ExampleMatcher.apply_example(builder, example, columns), sort, columns
            )
        )

    def to_sql(self) -> str:
        """Return the SQL for the current criteria, before row filters"""
        return self._query().to_sql()

    @staticmethod
    def get_query_tracker() -> QueryTracker | None:
        """Get the current query tracker if query tracking is enabled.

        Example:
            async with DatabaseManager.track_queries():
                article = await article_repo.find_by_id(article_id)
                tracker = Repository.get_query_tracker()
                queries = tracker.get_queries() if tracker else []
        """
        return get_query_tracker()

    # Reads
    async def find_all(self) -> list[T]:
        """Execute the current criteria and return all matching entities"""
        return await self._session().fetch_entities(self.entity_mapper, self._query())  # type: ignore[return-value]

    async def first(self) -> T | None:
        entities = await self._session().fetch_entities(
            self.entity_mapper, self._query().limit(1)
        )
        return entities[0] if entities else None  # type: ignore[return-value]

    async def count(self) -> int:
        result = await self._session().fetch_value(
            self.entity_mapper, self._query().for_count()
        )
        return result or 0

    async def exists(self) -> bool:
        return await self.count() > 0

    async def find_by_id(self, entity_id: UUID) -> T | None:
        """Find an entity by primary key through the session's identity map"""
        return await self._session().load_by_id(self.entity_mapper, entity_id)  # type: ignore[return-value]

    async def find_all_by_id(self, ids: Iterable[UUID]) -> list[T]:
        str_ids = [str(entity_id) for entity_id in ids]
        if not str_ids:
            return []
        return await self.where_in("id", str_ids).find_all()

    async def exists_by_id(self, entity_id: UUID) -> bool:
        return await self.where("id", str(entity_id)).exists()

    async def find_all_by_example(
        self, example: BaseModel, sort: BaseModel | None = None
    ) -> list[T]:
        return await self.matching(example, sort).find_all()

    async def find_one_by_example(self, example: BaseModel) -> T | None:
        return await self.matching(example).first()

    async def count_by_example(self, example: BaseModel) -> int:
        return await self.matching(example).count()

    async def exists_by_example(self, example: BaseModel) -> bool:
        return await self.matching(example).exists()

    # Writes
    async def create(self, entity: T) -> T:
        """Insert a new entity"""
        session = self._session()
        session.persist(self.entity_mapper, entity)
        await session.flush()
        return entity

    async def create_many(self, entities: list[T]) -> list[T]:
        """Insert several entities in one flush"""
        if not entities:
            return []
        session = self._session()
        for entity in entities:
            session.persist(self.entity_mapper, entity)
        await session.flush()
        return entities

    async def save(self, entity: T) -> T:
        """Write the entity's current state and return the managed instance"""
        session = self._session()
        managed = session.merge(self.entity_mapper, entity)
        await session.flush()
        return managed  # type: ignore[return-value]

    async def update(self, entity_id: UUID, update_data: U) -> T | None:
        """Apply the fields set on ``update_data`` to the entity with this id.

        Only fields explicitly set on the update model are applied, so
        ``None`` can be written deliberately. Returns None if no entity is
        found.
        """
        entity = await self.find_by_id(entity_id)
        if entity is None:
            return None

        changes = update_data.model_dump(exclude_unset=True)
        if not changes:
            return entity
        for field, value in changes.items():
            setattr(entity, field, value)
        return await self.save(entity)

    async def delete(self, entity: T) -> None:
        """Permanently delete an entity"""
        session = self._session()
        session.remove(self.entity_mapper, self._attach(session, entity))
        await session.flush()

    async def delete_by_id(self, entity_id: UUID) -> bool:
        """Delete the entity with this id; returns False if there is none"""
        entity = await self._session().load_by_id(self.entity_mapper, entity_id)
        if entity is None:
            return False
        await self.delete(entity)  # type: ignore[arg-type]
        return True

    async def delete_all(self, entities: Iterable[T] | None = None) -> int:
        """Delete the given entities, or every entity matching the current criteria"""
        if entities is None:
            entities = await self.find_all()
        deleted = 0
        for entity in entities:
            await self.delete(entity)
            deleted += 1
        return deleted

    async def delete_all_by_id(self, ids: Iterable[UUID]) -> int:
        deleted = 0
        for entity_id in ids:
            if await self.delete_by_id(entity_id):
                deleted += 1
        return deleted

"""Unit of work bound to one database connection.

A ``Session`` is created by ``DatabaseManager.transaction()`` and lives for the
outermost transaction. It keeps:

- an identity map, so one row is represented by one entity instance;
- a queue of pending writes, executed in order by ``flush()``;
- the set of enabled row filters.

An UPDATE that matches no row raises ``StaleEntityError`` and evicts the
entity, so a force deleted record cannot be written back by a later merge.

Queries flush pending writes first, so reads see the session's own changes.
``load_by_id`` is the fast path: it answers from the identity map when it can
and never applies row filters.

A session is not safe for concurrent use by several tasks, in the same way
as its asyncpg connection.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Literal

import asyncpg
from pydantic import BaseModel

from softrepo.database_operations import DatabaseOperations
from softrepo.entity_mapper import EntityMapper
from softrepo.exceptions import DetachedEntityError, StaleEntityError
from softrepo.query_builder import QueryBuilder
from softrepo.row_filter import default_filter_names, get_filter_definition

logger = logging.getLogger(__name__)

type IdentityKey = tuple[str, str]


@dataclass
class PendingWrite:
    key: IdentityKey
    kind: Literal["insert", "update", "delete"]
    query: str
    params: list[Any]


class Session:
    """Identity map, write queue and row filter state for one transaction"""

    def __init__(
        self, connection: asyncpg.Connection, filters: Iterable[str] | None = None
    ):
        self.connection = connection
        self.db_ops = DatabaseOperations(connection)
        self._identity_map: dict[IdentityKey, BaseModel] = {}
        self._pending: list[PendingWrite] = []
        self._enabled_filters: set[str] = set(
            default_filter_names() if filters is None else filters
        )

    # Row filters

    def enable_filter(self, name: str) -> None:
        """Enable a row filter; a no-op when it is already enabled"""
        get_filter_definition(name)
        if name not in self._enabled_filters:
            self._enabled_filters.add(name)
            logger.debug("Enabled row filter %r", name)

    def disable_filter(self, name: str) -> None:
        """Disable a row filter; a no-op when it is already disabled"""
        get_filter_definition(name)
        if name in self._enabled_filters:
            self._enabled_filters.discard(name)
            logger.debug("Disabled row filter %r", name)

    def is_filter_enabled(self, name: str) -> bool:
        return name in self._enabled_filters

    @property
    def enabled_filters(self) -> frozenset[str]:
        return frozenset(self._enabled_filters)

    def apply_filters(self, mapper: EntityMapper, builder: QueryBuilder) -> QueryBuilder:
        """Add the enabled filters the mapped entity declares"""
        for name in mapper.row_filters:
            if name in self._enabled_filters:
                builder = get_filter_definition(name).condition(builder, mapper)
        return builder

    # Identity map

    def contains(self, mapper: EntityMapper, entity: BaseModel) -> bool:
        """Whether this exact instance is managed by the session"""
        key = mapper.identity_key(mapper.entity_id(entity))
        return self._identity_map.get(key) is entity

    def _manage(self, key: IdentityKey, entity: BaseModel) -> BaseModel:
        managed = self._identity_map.get(key)
        if managed is None:
            self._identity_map[key] = entity
            return entity
        return managed

    def _manage_row(self, mapper: EntityMapper, row: Any) -> BaseModel:
        entity = mapper.map_row_to_entity(row)
        return self._manage(mapper.identity_key(mapper.entity_id(entity)), entity)

    def clear(self) -> None:
        """Detach every entity and drop unflushed writes"""
        self._identity_map.clear()
        self._pending.clear()

    def discard_pending(self) -> None:
        if self._pending:
            logger.debug("Discarding %d unflushed write(s)", len(self._pending))
        self._pending.clear()

    # Reads

    async def fetch_entities(
        self, mapper: EntityMapper, builder: QueryBuilder
    ) -> list[BaseModel]:
        """Run a filtered SELECT and return managed entities"""
        await self.flush()
        query, params = self.apply_filters(mapper, builder).build()
        rows = await self.db_ops.fetch_all(query, params)
        return [self._manage_row(mapper, row) for row in rows]

    async def fetch_value(self, mapper: EntityMapper, builder: QueryBuilder) -> Any:
        """Run a filtered query returning a single value"""
        await self.flush()
        query, params = self.apply_filters(mapper, builder).build()
        return await self.db_ops.fetch_value(query, params)

    async def load_by_id(self, mapper: EntityMapper, entity_id: Any) -> BaseModel | None:
        """Load by primary key, bypassing row filters.

        Returns the managed instance straight from the identity map when the
        row was already loaded in this session, whatever its current state.
        """
        key = mapper.identity_key(entity_id)
        if key in self._identity_map:
            return self._identity_map[key]

        await self.flush()
        query, params = (
            QueryBuilder(mapper.qualified_table_name).where("id", str(entity_id)).build()
        )
        row = await self.db_ops.fetch_one(query, params)
        if row is None:
            return None
        return self._manage_row(mapper, row)

    # Writes

    def persist(self, mapper: EntityMapper, entity: BaseModel) -> BaseModel:
        """Queue an INSERT for a new entity and start managing it"""
        key = mapper.identity_key(mapper.entity_id(entity))
        row = mapper.to_row(entity)
        columns = ", ".join(row)
        placeholders = ", ".join(f"${i + 1}" for i in range(len(row)))
        self._pending.append(
            PendingWrite(
                key,
                "insert",
                f"INSERT INTO {mapper.qualified_table_name} ({columns}) VALUES ({placeholders})",
                list(row.values()),
            )
        )
        self._identity_map[key] = entity
        return entity

    def merge(self, mapper: EntityMapper, entity: BaseModel) -> BaseModel:
        """Copy the entity's state onto the managed instance and queue an UPDATE.

        A detached entity with no managed counterpart becomes managed itself.
        The state is captured when merge is called; later changes need
        another merge. Returns the managed instance.
        """
        entity_id = mapper.entity_id(entity)
        key = mapper.identity_key(entity_id)
        managed = self._manage(key, entity)
        if managed is not entity:
            for name in mapper.entity_class.model_fields:
                setattr(managed, name, getattr(entity, name))

        row = mapper.to_row(managed)
        row.pop("id", None)
        if not row:
            return managed

        set_clause = ", ".join(f"{column} = ${i + 2}" for i, column in enumerate(row))
        self._pending = [
            write
            for write in self._pending
            if not (write.key == key and write.kind == "update")
        ]
        self._pending.append(
            PendingWrite(
                key,
                "update",
                f"UPDATE {mapper.qualified_table_name} SET {set_clause} WHERE id = $1",
                [str(entity_id), *row.values()],
            )
        )
        return managed

    def remove(self, mapper: EntityMapper, entity: BaseModel) -> None:
        """Stop managing the entity and queue a DELETE for its row"""
        entity_id = mapper.entity_id(entity)
        key = mapper.identity_key(entity_id)
        if self._identity_map.get(key) is not entity:
            raise DetachedEntityError(
                f"{type(entity).__name__} {entity_id} is not managed by this session; merge it first"
            )

        del self._identity_map[key]
        unflushed_insert = any(
            write.key == key and write.kind == "insert" for write in self._pending
        )
        self._pending = [write for write in self._pending if write.key != key]
        if unflushed_insert:
            return

        self._pending.append(
            PendingWrite(
                key,
                "delete",
                f"DELETE FROM {mapper.qualified_table_name} WHERE id = $1",
                [str(entity_id)],
            )
        )

    @property
    def has_pending_writes(self) -> bool:
        return bool(self._pending)

    async def flush(self) -> None:
        """Execute pending writes in the order they were queued"""
        if not self._pending:
            return
        pending, self._pending = self._pending, []
        logger.debug("Flushing %d pending write(s)", len(pending))
        for write in pending:
            status = await self.db_ops.execute_query(write.query, write.params)
            if write.kind == "update" and status.split()[-1] == "0":
                # The row is gone; the instance no longer represents it
                self._identity_map.pop(write.key, None)
                raise StaleEntityError(
                    f"Row {write.key[1]} no longer exists in {write.key[0]}"
                )

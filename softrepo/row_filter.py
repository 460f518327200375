"""Named row filters that a session can switch on and off.

A filter restricts every query a session issues for the entity types that
declare it. Filters are defined once, at import time, and toggled per
session:

    session.disable_filter(SOFT_DELETE_FILTER)

Code that switches a filter off for a privileged operation must use
``filter_suspended`` so the previous state comes back on every exit path.
"""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from softrepo.exceptions import FilterNotDefinedError
from softrepo.query_builder import QueryBuilder

if TYPE_CHECKING:
    from softrepo.entity_mapper import EntityMapper


@dataclass(frozen=True)
class FilterDefinition:
    """A named restriction applied to the queries of participating entities.

    Attributes:
        name: Filter name, shared by every entity type that declares it
        condition: Adds the restriction to a builder for the given entity mapper
        enabled_by_default: Whether new sessions start with the filter enabled
    """

    name: str
    condition: Callable[[QueryBuilder, "EntityMapper"], QueryBuilder]
    enabled_by_default: bool = False


_filter_definitions: dict[str, FilterDefinition] = {}


def define_filter(definition: FilterDefinition) -> FilterDefinition:
    """Register a filter definition; redefining a name replaces it"""
    _filter_definitions[definition.name] = definition
    return definition


def get_filter_definition(name: str) -> FilterDefinition:
    try:
        return _filter_definitions[name]
    except KeyError:
        raise FilterNotDefinedError(name) from None


def default_filter_names() -> set[str]:
    return {
        name
        for name, definition in _filter_definitions.items()
        if definition.enabled_by_default
    }


class FilterToggle(Protocol):
    """The part of a session that holds row filter state"""

    def enable_filter(self, name: str) -> None: ...

    def disable_filter(self, name: str) -> None: ...

    def is_filter_enabled(self, name: str) -> bool: ...


@contextmanager
def filter_suspended(session: FilterToggle, name: str) -> Iterator[FilterToggle]:
    """Disable a filter for the duration of the block.

    The filter is switched back on when the block exits, whether it returns,
    raises or is cancelled, if it was enabled on entry. Errors raised while
    toggling are not caught.

    Example:
        with filter_suspended(session, SOFT_DELETE_FILTER):
            entity = await session.load_by_id(mapper, entity_id)
    """
    was_enabled = session.is_filter_enabled(name)
    session.disable_filter(name)
    try:
        yield session
    finally:
        if was_enabled:
            session.enable_filter(name)


__all__ = [
    "FilterDefinition",
    "FilterToggle",
    "default_filter_names",
    "define_filter",
    "filter_suspended",
    "get_filter_definition",
]

"""Re-enables the soft delete filter whenever a repository is entered.

Every public coroutine method of ``Repository`` and its subclasses is wrapped
with ``ensure_row_filter``. On the outermost repository call of a context the
wrapper switches the soft delete filter back on for the current session, in
case earlier code left it off. Calls made from inside a repository method are
not advised again, so a method that suspended the filter on purpose keeps it
suspended for its own nested calls.

This is advisory: failures here are logged and ignored, and the wrapped method
runs regardless.
"""

import inspect
import logging
from contextvars import ContextVar
from functools import wraps

from softrepo.db_context import DatabaseManager
from softrepo.soft_deletable import SOFT_DELETE_FILTER

logger = logging.getLogger(__name__)

_repository_call_depth: ContextVar[int] = ContextVar("repository_call_depth", default=0)

_ADVISED = "__row_filter_advised__"


def reassert_soft_delete_filter() -> None:
    """Enable the soft delete filter on the current session, ignoring failures"""
    try:
        session = DatabaseManager.get_current_session()
        if session is None:
            logger.debug("No active session; soft delete filter not re-asserted")
            return
        session.enable_filter(SOFT_DELETE_FILTER)
    except Exception as exc:
        logger.debug("Could not re-assert soft delete filter: %s", exc)


def ensure_row_filter(method):
    """Wrap a repository coroutine so its outermost call re-asserts the filter"""
    if getattr(method, _ADVISED, False):
        return method

    @wraps(method)
    async def wrapper(*args, **kwargs):
        depth = _repository_call_depth.get()
        if depth == 0:
            reassert_soft_delete_filter()
        token = _repository_call_depth.set(depth + 1)
        try:
            return await method(*args, **kwargs)
        finally:
            _repository_call_depth.reset(token)

    setattr(wrapper, _ADVISED, True)
    return wrapper


def advise_repository_methods[C: type](cls: C) -> C:
    """Class decorator applying ``ensure_row_filter`` to public coroutine methods"""
    for name, attribute in list(vars(cls).items()):
        if name.startswith("_") or not inspect.iscoroutinefunction(attribute):
            continue
        setattr(cls, name, ensure_row_filter(attribute))
    return cls

"""Exceptions raised by the repository layer"""


class RepositoryError(Exception):
    """Base class for errors raised by softrepo."""


class NoActiveTransactionError(RepositoryError, ValueError):
    """Raised when a repository is used outside a transaction context."""

    def __init__(self):
        super().__init__(
            "No active transaction found. Repository methods must be called within a transaction context."
        )


class FilterNotDefinedError(RepositoryError, KeyError):
    """Raised when toggling a row filter that was never defined."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Row filter '{name}' is not defined")

    def __str__(self) -> str:
        return self.args[0]


class DetachedEntityError(RepositoryError):
    """Raised when removing an entity the current session does not manage."""


class StaleEntityError(RepositoryError):
    """Raised when a flushed UPDATE finds no row, e.g. after a force delete."""

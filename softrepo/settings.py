"""Global soft delete settings.

Loaded once from the environment (or a ``.env`` file):

    SOFT_DELETE_COLUMN_NAME=removed_at

Per-entity overrides set with ``@soft_delete_column`` take precedence.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_COLUMN_NAME = "deleted_at"


class SoftDeleteSettings(BaseSettings):
    """Soft delete options read from ``SOFT_DELETE_*`` environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="SOFT_DELETE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    column_name: str = Field(
        default=DEFAULT_COLUMN_NAME,
        min_length=1,
        description="Database column holding the soft delete timestamp",
    )


@lru_cache(maxsize=1)
def get_settings() -> SoftDeleteSettings:
    """Return the cached settings instance."""
    return SoftDeleteSettings()


__all__ = ["DEFAULT_COLUMN_NAME", "SoftDeleteSettings", "get_settings"]

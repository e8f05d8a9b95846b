"""
hllstore configuration management.

Values default from HLLSTORE_* environment variables and are validated
when the config is built, so a bad interval fails at construction.
"""

from pydantic import BaseModel, ConfigDict, Field
import os


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class CounterConfig(BaseModel):
    """Configuration for a HyperLogLogCounter."""

    model_config = ConfigDict(validate_default=True)

    # Batching
    flush_interval_ms: int = Field(
        default_factory=lambda: int(os.getenv("HLLSTORE_FLUSH_INTERVAL_MS", "1000")),
        gt=0,
    )
    immediate_flush: bool = Field(
        default_factory=lambda: _env_bool("HLLSTORE_IMMEDIATE_FLUSH", "false")
    )

    # SQLite backend
    sqlite_path: str = Field(
        default_factory=lambda: os.getenv("HLLSTORE_SQLITE_PATH", "hllstore.db")
    )

    @property
    def flush_interval_seconds(self) -> float:
        return self.flush_interval_ms / 1000.0

"""Configuration management for testbook."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TestbookSettings(BaseSettings):
    """Settings for the record store and its command line.

    Loads from environment variables prefixed with ``TESTBOOK_``, e.g.
    ``TESTBOOK_MAX_RECORDS=500``.
    """

    __test__ = False  # Prevent pytest from collecting this as a test class

    data_dir: Path = Field(default=Path("."), description="Directory searched for record files")
    default_file: str = Field(default="tests.csv", description="File used when none is given")
    max_records: int = Field(default=10_000, ge=1, description="Soft ceiling checked when adding tests")
    page_size: int = Field(default=10, ge=1, description="Rows per page in listings")
    log_level: str = Field(default="WARNING", description="Level for the testbook logger")

    model_config = SettingsConfigDict(
        env_prefix="TESTBOOK_",
        extra="ignore",
    )

    def resolve(self, path: str | Path | None) -> Path:
        """Resolve a record file name against ``data_dir``."""
        candidate = Path(path) if path else Path(self.default_file)
        candidate = candidate.expanduser()
        if candidate.is_absolute():
            return candidate
        return self.data_dir / candidate


@lru_cache
def get_settings() -> TestbookSettings:
    return TestbookSettings()

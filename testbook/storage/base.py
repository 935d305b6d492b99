"""Abstract base class for record stores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

from ..models.record import TestOutcome, TestRecord


if TYPE_CHECKING:
    from .csv_store import RecordEdit


class RecordStore(ABC):
    """Abstract storage backend for test records.

    Every successful mutation is already saved when the call returns; a
    failed save leaves the in-memory table as it was before the call.
    """

    @abstractmethod
    def create(
        self, system_name: str, test_type: str, result: TestOutcome | str = TestOutcome.PENDING
    ) -> TestRecord:
        """Add a new active test and return it."""

    @abstractmethod
    def find(self, test_id: int) -> int:
        """Return the position of the test with ``test_id``."""

    @abstractmethod
    def list_active(self) -> list[TestRecord]:
        """Active tests in store order."""

    @abstractmethod
    def list_inactive(self) -> list[TestRecord]:
        """Soft-deleted tests in store order."""

    @abstractmethod
    def search(self, term: str) -> list[TestRecord]:
        """Active tests with a field containing ``term``."""

    @abstractmethod
    def edit(self, test_id: int) -> RecordEdit:
        """Start a deferred-commit edit of an active test."""

    @abstractmethod
    def soft_delete(self, test_id: int) -> TestRecord:
        """Mark a test deleted."""

    @abstractmethod
    def recover(self, test_id: int) -> TestRecord:
        """Bring a deleted test back."""

    @abstractmethod
    def permanent_delete(self, test_id: int) -> None:
        """Remove a deleted test for good."""

    @abstractmethod
    def bind_new_file(self, path: str | Path, create_if_missing: bool = False) -> RecordStore:
        """Replace the whole store with the content of another file."""

    def update(self, test_id: int, field: str, value: str | TestOutcome) -> TestRecord:
        """Edit a single field and save right away."""
        with self.edit(test_id) as pending:
            pending.set(field, value)
            return pending.save()

"""CSV file backed record store."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable, Iterator

from ..core.codec import DecodeResult, DecodeWarning, read_file, write_file
from ..core.config import TestbookSettings, get_settings
from ..core.validators import (
    EDITABLE_FIELDS,
    MAX_FIELD_LENGTH,
    MIN_FIELD_LENGTH,
    MIN_SEARCH_LENGTH,
    validate_field,
    validate_name,
    validate_search_term,
    validate_type,
)
from ..errors import (
    AlreadyDeletedError,
    CapacityError,
    LoadError,
    MustSoftDeleteFirstError,
    NotDeletedError,
    NotFoundError,
    PersistError,
    TestbookError,
    UnknownFieldError,
    ValidationError,
)
from ..models.record import TestOutcome, TestRecord
from .base import RecordStore


logger = logging.getLogger(__name__)

_FIELD_LABELS = {
    "system_name": "system name",
    "test_type": "test type",
    "result": "test result",
}

_FIELD_RULES = {
    "system_name": f"{MIN_FIELD_LENGTH}-{MAX_FIELD_LENGTH} characters: letters, digits, spaces and ()[]-_.",
    "test_type": f"{MIN_FIELD_LENGTH}-{MAX_FIELD_LENGTH} letters or digits",
    "result": ", ".join(o.display_name for o in TestOutcome),
}


def _invalid(field: str, value: Any) -> ValidationError:
    return ValidationError(
        f"invalid {_FIELD_LABELS[field]} {value!r} (expected {_FIELD_RULES[field]})",
        field=field,
    )


def _coerce_outcome(value: TestOutcome | str) -> TestOutcome:
    if isinstance(value, TestOutcome):
        return value
    return TestOutcome.parse(value)


def _next_id_after(records: Iterable[TestRecord]) -> int:
    return max((r.test_id for r in records), default=0) + 1


def load_records(path: str | Path, create_if_missing: bool = False) -> DecodeResult:
    """Read a record file, or create an empty one.

    Raises:
        LoadError: if the file is missing (and may not be created) or unreadable.
        HeaderMismatchError: if the file exists with a different header.
        PersistError: if a new file cannot be created.
    """
    path = Path(path)
    if not path.exists():
        if not create_if_missing:
            raise LoadError(f"{path} does not exist", path=path)
        write_file(path, [])
        logger.info("Created empty test file %s", path)
        return DecodeResult(records=[], warnings=[])
    return read_file(path)


class RecordEdit:
    """Working copy of one record.

    Field edits are validated as they are made but nothing is written until
    ``save()``, which stores every change at once or none of them.

    Usage:
        with store.edit(7) as pending:
            pending.set("system_name", "Billing API")
            pending.set("result", "Passed")
            pending.save()

    Leaving the block without saving discards the edits.
    """

    def __init__(self, store: CSVRecordStore, record: TestRecord) -> None:
        self._store = store
        self._original = record
        self.record = record
        self.changes: dict[str, str | TestOutcome] = {}
        self.closed = False

    @property
    def test_id(self) -> int:
        return self._original.test_id

    @property
    def dirty(self) -> bool:
        return bool(self.changes)

    def _check_open(self) -> None:
        if self.closed:
            raise TestbookError(f"edit of test {self.test_id} is already closed")

    def set(self, field: str, value: str | TestOutcome) -> TestRecord:
        """Apply one field edit to the working copy.

        Raises:
            UnknownFieldError: if ``field`` is not editable.
            ValidationError: if ``value`` breaks the field rule.
        """
        self._check_open()
        if field not in EDITABLE_FIELDS:
            raise UnknownFieldError(
                f"unknown field {field!r} (editable: {', '.join(EDITABLE_FIELDS)})", field=field
            )

        new_value: str | TestOutcome
        if field == "result":
            if not isinstance(value, TestOutcome) and not validate_field(field, value):
                raise _invalid(field, value)
            new_value = _coerce_outcome(value)
        else:
            if not isinstance(value, str) or not validate_field(field, value):
                raise _invalid(field, value)
            new_value = value.strip()

        self.record = replace(self.record, **{field: new_value})
        self.changes[field] = new_value
        return self.record

    def save(self) -> TestRecord:
        """Store all edits with a single file rewrite.

        On failure the store is left untouched and the edit stays open, so
        the caller can retry or discard.
        """
        self._check_open()
        saved = self._store._apply_changes(self.test_id, self.changes)
        self.record = saved
        self.closed = True
        return saved

    def discard(self) -> None:
        if not self.closed:
            logger.debug("Discarding %d pending change(s) to test %d", len(self.changes), self.test_id)
        self.record = self._original
        self.changes = {}
        self.closed = True

    def __enter__(self) -> RecordEdit:
        return self

    def __exit__(self, *exc_info: object) -> None:
        if not self.closed:
            self.discard()


class CSVRecordStore(RecordStore):
    """Test records held in memory and mirrored to a CSV file.

    The whole file is rewritten after every successful mutation. No file
    locking is done: the store assumes it is the only writer of ``path``.
    """

    def __init__(
        self,
        path: str | Path,
        records: Iterable[TestRecord] | None = None,
        settings: TestbookSettings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.path = Path(path)
        self.warnings: list[DecodeWarning] = []
        self._records: list[TestRecord] = []
        self._next_id = 1
        self._replace_state(self.path, list(records or []))

    def _replace_state(self, path: Path, records: list[TestRecord]) -> None:
        ids = [r.test_id for r in records]
        if len(ids) != len(set(ids)):
            raise ValueError("test IDs must be unique")
        if len(records) > self.max_records:
            logger.warning(
                "%s holds %d tests, more than the configured maximum of %d",
                path,
                len(records),
                self.max_records,
            )
        self.path = path
        self._records = records
        self._next_id = _next_id_after(records)

    @property
    def max_records(self) -> int:
        return self.settings.max_records

    @property
    def records(self) -> tuple[TestRecord, ...]:
        return tuple(self._records)

    @property
    def next_id(self) -> int:
        return self._next_id

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[TestRecord]:
        return iter(tuple(self._records))

    def _persist(self, snapshot: tuple[list[TestRecord], int]) -> None:
        """Write the table; restore ``snapshot`` if the write fails."""
        try:
            write_file(self.path, self._records)
        except PersistError:
            logger.error("Saving %s failed, changes rolled back", self.path)
            self._records, self._next_id = snapshot
            raise

    def _snapshot(self) -> tuple[list[TestRecord], int]:
        return list(self._records), self._next_id

    def create(
        self, system_name: str, test_type: str, result: TestOutcome | str = TestOutcome.PENDING
    ) -> TestRecord:
        if not validate_name(system_name):
            raise _invalid("system_name", system_name)
        if not validate_type(test_type):
            raise _invalid("test_type", test_type)
        outcome = _coerce_outcome(result)
        if len(self._records) >= self.max_records:
            raise CapacityError(f"cannot add more than {self.max_records} tests")

        record = TestRecord(
            test_id=self._next_id,
            system_name=system_name.strip(),
            test_type=test_type.strip(),
            result=outcome,
            active=True,
        )
        snapshot = self._snapshot()
        self._records.append(record)
        self._next_id += 1
        self._persist(snapshot)
        logger.info("Added test %d to %s", record.test_id, self.path)
        return record

    def find(self, test_id: int) -> int:
        for index, record in enumerate(self._records):
            if record.test_id == test_id:
                return index
        raise NotFoundError(test_id)

    def get(self, test_id: int) -> TestRecord:
        return self._records[self.find(test_id)]

    def list_active(self) -> list[TestRecord]:
        return [r for r in self._records if r.active]

    def list_inactive(self) -> list[TestRecord]:
        return [r for r in self._records if not r.active]

    def search(self, term: str) -> list[TestRecord]:
        if not validate_search_term(term):
            raise ValidationError(
                f"search term must be at least {MIN_SEARCH_LENGTH} characters", field="term"
            )
        needle = term.strip()
        return [r for r in self._records if r.active and r.matches(needle)]

    def edit(self, test_id: int) -> RecordEdit:
        record = self.get(test_id)
        if not record.active:
            raise NotFoundError(test_id, f"test {test_id} is deleted and cannot be edited")
        return RecordEdit(self, record)

    def _apply_changes(self, test_id: int, changes: dict[str, Any]) -> TestRecord:
        index = self.find(test_id)
        current = self._records[index]
        if not current.active:
            raise NotFoundError(test_id, f"test {test_id} is deleted and cannot be edited")
        if not changes:
            return current

        updated = replace(current, **changes)
        snapshot = self._snapshot()
        self._records[index] = updated
        self._persist(snapshot)
        logger.info("Updated %s of test %d", ", ".join(sorted(changes)), test_id)
        return updated

    def _set_active(self, index: int, active: bool) -> TestRecord:
        updated = replace(self._records[index], active=active)
        snapshot = self._snapshot()
        self._records[index] = updated
        self._persist(snapshot)
        return updated

    def soft_delete(self, test_id: int) -> TestRecord:
        index = self.find(test_id)
        if not self._records[index].active:
            raise AlreadyDeletedError(test_id)
        record = self._set_active(index, False)
        logger.info("Deleted test %d", test_id)
        return record

    def recover(self, test_id: int) -> TestRecord:
        index = self.find(test_id)
        if self._records[index].active:
            raise NotDeletedError(test_id)
        record = self._set_active(index, True)
        logger.info("Recovered test %d", test_id)
        return record

    def permanent_delete(self, test_id: int) -> None:
        # A failed save restores the removed record at its old position.
        index = self.find(test_id)
        if self._records[index].active:
            raise MustSoftDeleteFirstError(test_id)
        snapshot = self._snapshot()
        del self._records[index]
        self._persist(snapshot)
        logger.info("Permanently removed test %d", test_id)

    def bind_new_file(self, path: str | Path, create_if_missing: bool = False) -> CSVRecordStore:
        """Load ``path`` into this store, replacing everything it held.

        The store is unchanged if loading fails.
        """
        path = Path(path)
        loaded = load_records(path, create_if_missing=create_if_missing)
        self._replace_state(path, loaded.records)
        self.warnings = loaded.warnings
        logger.info("Bound to %s (%d tests, %d warnings)", path, len(loaded.records), len(loaded.warnings))
        return self


def open_store(
    path: str | Path,
    create_if_missing: bool = False,
    settings: TestbookSettings | None = None,
) -> CSVRecordStore:
    """Build a store bound to ``path``."""
    loaded = load_records(path, create_if_missing=create_if_missing)
    store = CSVRecordStore(path, loaded.records, settings=settings)
    store.warnings = loaded.warnings
    return store

"""Storage module for persisting test records."""

from .base import RecordStore
from .csv_store import CSVRecordStore, RecordEdit, load_records, open_store


__all__ = ["CSVRecordStore", "RecordEdit", "RecordStore", "load_records", "open_store"]

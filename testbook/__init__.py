"""
Testbook - keep a list of tests and their results in a CSV file.

The record store validates every field, supports soft deletion with
recovery, and rewrites the backing file after each successful change.
"""

from .errors import TestbookError
from .models.record import TestOutcome, TestRecord
from .storage import CSVRecordStore, RecordEdit, RecordStore, open_store

__version__ = "1.0.0"

__all__ = [
    "CSVRecordStore",
    "RecordEdit",
    "RecordStore",
    "TestbookError",
    "TestOutcome",
    "TestRecord",
    "open_store",
]

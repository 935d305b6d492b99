"""Data models for testbook."""

from .record import TestOutcome, TestRecord

__all__ = [
    "TestOutcome",
    "TestRecord",
]

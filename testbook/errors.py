"""Exceptions raised by the test record store."""

from __future__ import annotations


class TestbookError(Exception):
    """Base error for this package."""

    __test__ = False  # Prevent pytest from collecting this as a test class


class ValidationError(TestbookError):
    """Raised when an input value fails a field rule."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class UnknownFieldError(ValidationError):
    """Raised when an edit names a field that cannot be edited."""


class UnknownOutcomeError(ValidationError, ValueError):
    """Raised when a token does not name a result category."""

    def __init__(self, token: str) -> None:
        self.token = token
        super().__init__(f"unknown test result: {token!r}", field="result")


class CapacityError(TestbookError):
    """Raised when the store already holds the configured maximum of records."""


class StateError(TestbookError):
    """Base for operations whose precondition on a record does not hold."""

    default_message = "invalid record state"

    def __init__(self, test_id: int, message: str | None = None) -> None:
        self.test_id = test_id
        super().__init__(message or f"{self.default_message}: {test_id}")


class NotFoundError(StateError):
    """No record with the given ID exists (or it is not editable)."""

    default_message = "no test with ID"


class AlreadyDeletedError(StateError):
    """The record is already soft-deleted."""

    default_message = "test is already deleted"


class NotDeletedError(StateError):
    """The record is active, so there is nothing to recover."""

    default_message = "test is not deleted"


class MustSoftDeleteFirstError(StateError):
    """Permanent deletion was attempted on an active record."""

    default_message = "test must be deleted before it can be removed permanently"


class StoreFileError(TestbookError):
    """Base for problems with the backing file."""

    def __init__(self, message: str, path: object = None) -> None:
        self.path = path
        super().__init__(message)


class HeaderMismatchError(StoreFileError):
    """The first line of the file is not the required header."""


class LoadError(StoreFileError):
    """The backing file could not be read."""


class PersistError(StoreFileError):
    """The backing file could not be rewritten."""

"""Test record models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..errors import UnknownOutcomeError


class TestOutcome(Enum):
    """Result category of a test entry."""

    __test__ = False  # Prevent pytest from collecting this as a test class

    FAILED = "Failed"
    PASSED = "Passed"
    PENDING = "Pending"
    SUCCESS = "Success"

    @property
    def display_name(self) -> str:
        return self.value

    @classmethod
    def parse(cls, token: str | None) -> TestOutcome:
        """Convert a display name into a category.

        Matching ignores surrounding whitespace and case.

        Raises:
            UnknownOutcomeError: if the token names no category.
        """
        if isinstance(token, str):
            wanted = token.strip().casefold()
            for outcome in cls:
                if outcome.value.casefold() == wanted:
                    return outcome
        raise UnknownOutcomeError("" if token is None else str(token))

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TestRecord:
    """One test entry.

    ``active`` is False for soft-deleted entries, which stay in the store
    until they are recovered or removed permanently.
    """

    __test__ = False  # Prevent pytest from collecting this as a test class

    test_id: int
    system_name: str
    test_type: str
    result: TestOutcome = TestOutcome.PENDING
    active: bool = True

    def search_fields(self) -> tuple[str, str, str, str]:
        return (str(self.test_id), self.system_name, self.test_type, self.result.display_name)

    def matches(self, term: str) -> bool:
        """Case-insensitive substring match over every displayed field."""
        needle = term.casefold()
        return any(needle in value.casefold() for value in self.search_fields())

"""Text codec for the test record file.

File layout:
    TestID,SystemName,TestType,TestResult,Active
    5,Core DB,UnitTest,Passed,1

Fields are neither quoted nor escaped, so values must not contain commas.
Decoding is row-tolerant: a bad row never aborts the load. Only a wrong
header (or an unreadable file) fails.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, NamedTuple

from ..errors import HeaderMismatchError, LoadError, PersistError
from ..models.record import TestOutcome, TestRecord


logger = logging.getLogger(__name__)

HEADER = "TestID,SystemName,TestType,TestResult,Active"
DELIMITER = ","
FIELD_COUNT = 5
ENCODING = "utf-8"


@dataclass(frozen=True)
class DecodeWarning:
    """A recoverable problem found in one row."""

    line_number: int
    message: str

    def __str__(self) -> str:
        return f"line {self.line_number}: {self.message}"


class DecodeResult(NamedTuple):
    records: list[TestRecord]
    warnings: list[DecodeWarning]


def _parse_id(token: str) -> int | None:
    token = token.strip()
    if not token.isascii() or not token.isdigit():
        return None
    value = int(token)
    return value if value > 0 else None


def _parse_active(token: str) -> tuple[bool, str | None]:
    token = token.strip()
    if not token:
        return False, None
    if token in ("0", "1"):
        return token == "1", None
    try:
        return int(token) != 0, None
    except ValueError:
        return False, f"invalid active flag {token!r}, treating the test as deleted"


def decode_row(line: str, line_number: int) -> tuple[TestRecord | None, list[DecodeWarning]]:
    """Decode one data row.

    Returns ``(None, [])`` for rows that are skipped silently (no valid ID).
    """
    fields = line.split(DELIMITER)
    test_id = _parse_id(fields[0])
    if test_id is None:
        logger.debug("Skipping line %d: invalid test ID %r", line_number, fields[0])
        return None, []

    fields += [""] * (FIELD_COUNT - len(fields))
    _, system_name, test_type, result_token, active_token = fields[:FIELD_COUNT]
    warnings: list[DecodeWarning] = []

    try:
        result = TestOutcome.parse(result_token)
    except ValueError:
        result = TestOutcome.PENDING
        warnings.append(
            DecodeWarning(
                line_number,
                f"unknown result {result_token.strip()!r} for test {test_id}, using {result}",
            )
        )

    active, problem = _parse_active(active_token)
    if problem:
        warnings.append(DecodeWarning(line_number, f"{problem} (test {test_id})"))

    record = TestRecord(
        test_id=test_id,
        system_name=system_name.strip(),
        test_type=test_type.strip(),
        result=result,
        active=active,
    )
    return record, warnings


def decode(text: str) -> DecodeResult:
    """Parse file content into records.

    Raises:
        HeaderMismatchError: if the first line is not exactly ``HEADER``.
    """
    # Only LF and CRLF end a line; other Unicode line breaks are field content.
    lines = [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]
    if lines[0] != HEADER:
        raise HeaderMismatchError(f"expected header {HEADER!r}, found {lines[0]!r}")

    records: list[TestRecord] = []
    warnings: list[DecodeWarning] = []
    seen: set[int] = set()

    for line_number, line in enumerate(lines[1:], start=2):
        if not line.strip():
            continue
        record, row_warnings = decode_row(line, line_number)
        if record is None:
            continue
        if record.test_id in seen:
            row_warnings = [DecodeWarning(line_number, f"duplicate test ID {record.test_id}, row skipped")]
            record = None
        warnings.extend(row_warnings)
        if record is not None:
            seen.add(record.test_id)
            records.append(record)

    for warning in warnings:
        logger.warning("%s", warning)

    return DecodeResult(records=records, warnings=warnings)


def encode_record(record: TestRecord) -> str:
    return DELIMITER.join(
        (
            str(record.test_id),
            record.system_name,
            record.test_type,
            record.result.display_name,
            "1" if record.active else "0",
        )
    )


def encode(records: Iterable[TestRecord]) -> str:
    """Render records, header first, one line per record in order."""
    lines = [HEADER]
    lines.extend(encode_record(r) for r in records)
    return "\n".join(lines) + "\n"


def read_file(path: str | Path) -> DecodeResult:
    """Read and decode a record file.

    Raises:
        LoadError: if the file cannot be read.
        HeaderMismatchError: if the header is wrong.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding=ENCODING, newline="") as fh:
            text = fh.read()
    except (OSError, UnicodeDecodeError) as ex:
        raise LoadError(f"cannot read {path}: {ex}", path=path) from ex

    try:
        return decode(text)
    except HeaderMismatchError as ex:
        raise HeaderMismatchError(f"{path}: {ex}", path=path) from ex


def _new_file_mode() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def write_file(path: str | Path, records: Iterable[TestRecord]) -> None:
    """Rewrite the whole file.

    The content goes to a temporary file in the same directory which then
    replaces the target, so the old file survives a failed write.

    Raises:
        PersistError: if the file cannot be written.
    """
    path = Path(path)
    text = encode(records)
    tmp_name: str | None = None
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        with os.fdopen(fd, "w", encoding=ENCODING, newline="\n") as fh:
            fh.write(text)
        if path.exists():
            shutil.copymode(path, tmp_name)
        else:
            os.chmod(tmp_name, _new_file_mode())
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as ex:
        raise PersistError(f"cannot write {path}: {ex}", path=path) from ex
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                logger.debug("Could not remove temporary file %s", tmp_name)

"""Discovery of candidate record files in a directory."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from ..core.codec import ENCODING, HEADER
from ..errors import LoadError


logger = logging.getLogger(__name__)

RECORD_FILE_SUFFIX = ".csv"


@dataclass(frozen=True)
class CandidateFile:
    """A file that might hold test records."""

    path: Path
    has_header: bool

    @property
    def name(self) -> str:
        return self.path.name


def read_first_line(path: Path) -> str:
    with open(path, "r", encoding=ENCODING, errors="replace") as fh:
        return fh.readline().rstrip("\r\n")


def find_record_files(directory: str | Path) -> list[CandidateFile]:
    """List ``.csv`` files directly inside ``directory``, sorted by name.

    Each candidate notes whether its first line is the record header, so the
    caller can tell loadable files from other CSV exports.

    Raises:
        LoadError: if the directory cannot be listed.
    """
    directory = Path(directory)
    try:
        entries = sorted(directory.iterdir())
    except OSError as ex:
        raise LoadError(f"cannot open directory {directory}: {ex}", path=directory) from ex

    candidates: list[CandidateFile] = []
    for entry in entries:
        if entry.suffix.lower() != RECORD_FILE_SUFFIX or not entry.is_file():
            continue
        try:
            has_header = read_first_line(entry) == HEADER
        except OSError as ex:
            logger.warning("Cannot read %s: %s", entry, ex)
            has_header = False
        candidates.append(CandidateFile(path=entry, has_header=has_header))

    logger.debug("Found %d candidate file(s) in %s", len(candidates), directory)
    return candidates

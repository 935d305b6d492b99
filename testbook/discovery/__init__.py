"""Record file discovery."""

from .file_scanner import CandidateFile, find_record_files

__all__ = ["CandidateFile", "find_record_files"]

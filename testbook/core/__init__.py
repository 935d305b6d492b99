"""Core building blocks: validators, file codec, settings."""

from .codec import HEADER, DecodeResult, DecodeWarning, decode, encode
from .config import TestbookSettings, get_settings
from .validators import validate_id, validate_name, validate_type

__all__ = [
    "HEADER",
    "DecodeResult",
    "DecodeWarning",
    "decode",
    "encode",
    "TestbookSettings",
    "get_settings",
    "validate_id",
    "validate_name",
    "validate_type",
]

"""Persistence subsystem for Hardline Prophet.

This package provides:
- A checksum over a canonical encoding of the player record
- Stepwise migrations from every supported older schema to the current one
- A StateStore handling atomic disk I/O, version detection and integrity checks
"""

from .checksum import compute_checksum, verify_checksum
from .errors import (
    CorruptSaveError,
    InvalidArgumentError,
    SaveEncodingError,
    SaveError,
    SaveIntegrityError,
    StorageIOError,
    UnsupportedVersionError,
)
from .migrations import MIGRATIONS, migrate
from .store import StateStore

__all__ = [
    "compute_checksum",
    "verify_checksum",
    "migrate",
    "MIGRATIONS",
    "StateStore",
    "SaveError",
    "CorruptSaveError",
    "SaveIntegrityError",
    "UnsupportedVersionError",
    "StorageIOError",
    "InvalidArgumentError",
    "SaveEncodingError",
]

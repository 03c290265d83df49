from __future__ import annotations

import asyncio
import hmac
import logging
from pathlib import Path
from typing import Callable, Optional

from ..models.record import CURRENT_SCHEMA_VERSION, OLDEST_SUPPORTED_VERSION, PlayerRecord
from ..utils.fs import atomic_write_text, ensure_dir
from ..utils.jsonutil import pretty_dumps
from .checksum import compute_checksum
from .errors import (
    CorruptSaveError,
    InvalidArgumentError,
    SaveEncodingError,
    SaveIntegrityError,
    StorageIOError,
    UnsupportedVersionError,
)
from .migrations import decode_payload, migrate, sniff_version
from .paths import default_save_root, save_path_for

logger = logging.getLogger(__name__)

DiagnosticSink = Callable[[str], None]


class StateStore:
    """Loads and saves one JSON file per player, migrating old schemas on load.

    Create one instance at startup and pass it to whatever needs it.

    Args:
        base_dir: Directory holding save files. Defaults to the platform data dir.
        dev_mode: Downgrade integrity failures on load to diagnostics.
        diagnostics: Optional sink receiving diagnostic messages (in addition to logging).
    """

    def __init__(
        self,
        base_dir: Optional[Path] = None,
        *,
        dev_mode: bool = False,
        diagnostics: Optional[DiagnosticSink] = None,
    ) -> None:
        self.base_dir = Path(base_dir) if base_dir is not None else default_save_root()
        self.dev_mode = dev_mode
        self._diagnostics = diagnostics

    # Public API

    def path_for(self, username: str) -> Path:
        return save_path_for(self.base_dir, username)

    def exists(self, username: str) -> bool:
        return self.path_for(username).exists()

    def load(self, username: str) -> PlayerRecord:
        """Load the record for ``username``, or a fresh one if none was saved.

        Raises:
            CorruptSaveError: the file exists but cannot be decoded.
            SaveIntegrityError: checksum missing or wrong (normal mode only).
            UnsupportedVersionError: the file was written by a newer or unknown schema.
            StorageIOError: the file could not be read.
        """
        path = self.path_for(username)
        if not path.exists():
            logger.info("No save found for %r; starting fresh", username)
            return PlayerRecord.new(username)

        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise CorruptSaveError(f"Save file {path} is not valid UTF-8") from e
        except OSError as e:
            raise StorageIOError(f"Failed to read save file {path}: {e}") from e

        data = decode_payload(text)
        version = sniff_version(data)

        if version > CURRENT_SCHEMA_VERSION or version < OLDEST_SUPPORTED_VERSION:
            raise UnsupportedVersionError(version, OLDEST_SUPPORTED_VERSION, CURRENT_SCHEMA_VERSION)

        if version < CURRENT_SCHEMA_VERSION:
            # Migration recomputes the checksum at every step; nothing to validate here.
            record = migrate(data, version)
            logger.info("Migrated save for %r from v%d to v%d", username, version, record.schema_version)
            self._check_owner(record, username, path)
            return record

        try:
            record = PlayerRecord.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise CorruptSaveError(f"Malformed save payload in {path}: {e}") from e
        self.validate_integrity(record)
        self._check_owner(record, username, path)
        logger.info("Loaded save for %r (v%d)", username, version)
        return record

    def validate_integrity(self, record: PlayerRecord) -> bool:
        """Check the record's checksum.

        Returns True when the checksum verifies. In dev mode, or for records
        flagged as dev saves, a missing or wrong checksum is reported as a
        diagnostic and False is returned. Otherwise raises SaveIntegrityError.
        """
        relaxed = self.dev_mode or record.is_dev_save
        if record.checksum is None:
            problem = f"Save for {record.username!r} has no checksum"
        else:
            expected = compute_checksum(record)
            if hmac.compare_digest(expected.encode("ascii"), record.checksum.encode("utf-8")):
                return True
            problem = f"Save for {record.username!r} has a checksum mismatch (expected {expected}, found {record.checksum})"

        if not relaxed:
            raise SaveIntegrityError(problem)
        self._report(f"{problem}; loading anyway (dev mode)")
        return False

    def save(self, record: PlayerRecord) -> PlayerRecord:
        """Persist a copy of ``record`` stamped with the current version and a fresh checksum.

        The caller's record is left untouched; the persisted copy is returned.

        Raises:
            InvalidArgumentError: the record has no username.
            SaveEncodingError: the record cannot be serialized.
            StorageIOError: the file could not be written.
        """
        if not record.username:
            raise InvalidArgumentError("Cannot save a record without a username")

        stamped = record.with_changes(schema_version=CURRENT_SCHEMA_VERSION, checksum=None)
        try:
            stamped = stamped.with_changes(checksum=compute_checksum(stamped))
            text = pretty_dumps(stamped.to_dict())
        except (TypeError, ValueError) as e:
            raise SaveEncodingError(f"Failed to encode save for {record.username!r}: {e}") from e

        path = self.path_for(record.username)
        try:
            ensure_dir(path.parent)
            atomic_write_text(path, text)
        except OSError as e:
            logger.exception("Failed to write save file %s", path)
            raise StorageIOError(f"Failed to write save file {path}: {e}") from e
        logger.info("Saved %r to %s", record.username, path)
        return stamped

    def delete(self, username: str) -> bool:
        path = self.path_for(username)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageIOError(f"Failed to delete save file {path}: {e}") from e
        logger.info("Deleted save for %r", username)
        return True

    async def load_async(self, username: str) -> PlayerRecord:
        return await asyncio.to_thread(self.load, username)

    async def save_async(self, record: PlayerRecord) -> PlayerRecord:
        return await asyncio.to_thread(self.save, record)

    # Internal utilities

    def _check_owner(self, record: PlayerRecord, username: str, path: Path) -> None:
        # Distinct names can share a storage key ("zero/cool" and "zero_cool").
        if record.username != username:
            logger.warning(
                "Save file %s belongs to %r, not %r (names map to the same storage key)",
                path,
                record.username,
                username,
            )

    def _report(self, message: str) -> None:
        logger.warning(message)
        if self._diagnostics is not None:
            self._diagnostics(message)

class SaveError(Exception):
    """Base exception for save/load errors."""


class CorruptSaveError(SaveError):
    """Raised when a save payload exists but cannot be decoded."""


class SaveIntegrityError(SaveError):
    """Raised when a save's checksum is missing or does not match its contents."""


class UnsupportedVersionError(SaveError):
    """Raised when a save's schema version is outside the supported migration range.

    Kept distinct from CorruptSaveError so callers can tell "update required"
    apart from "file damaged".
    """

    def __init__(self, version: object, oldest: int, current: int) -> None:
        self.version = version
        self.oldest = oldest
        self.current = current
        super().__init__(
            f"Save schema version {version} is not supported (supported: {oldest}..{current})."
        )


class StorageIOError(SaveError):
    """Raised when the underlying storage read or write fails. Callers may retry."""


class InvalidArgumentError(SaveError, ValueError):
    """Raised when a save/load call is made with an invalid argument."""


class SaveEncodingError(SaveError):
    """Raised when a record cannot be serialized for persistence."""

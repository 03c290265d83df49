from __future__ import annotations

import os
from pathlib import Path

from platformdirs import PlatformDirs

APP_NAME = "HardlineProphet"
SAVE_SUBDIR = "Saves"
SAVE_SUFFIX = ".save.json"
FALLBACK_KEY = "default_user"

# Environment variable override (useful for tests and power users)
ENV_SAVE_DIR = "HARDLINE_SAVE_DIR"

# Characters rejected in file names on at least one supported platform.
_INVALID_FILENAME_CHARS = frozenset('<>:"/\\|?*') | frozenset(chr(c) for c in range(32))


def default_save_root() -> Path:
    """Return the directory saves live in.

    Linux: ~/.local/share/HardlineProphet/Saves
    macOS: ~/Library/Application Support/HardlineProphet/Saves
    Windows: %LOCALAPPDATA%\\HardlineProphet\\Saves
    """
    override = os.getenv(ENV_SAVE_DIR)
    if override:
        return Path(override).expanduser().resolve()
    dirs = PlatformDirs(appname=APP_NAME, appauthor=False)
    return Path(dirs.user_data_dir) / SAVE_SUBDIR


def storage_key(username: str) -> str:
    """Map a username to a file-name-safe key.

    Every invalid character becomes ``_``; a blank result falls back to
    ``default_user``.
    """
    key = "".join("_" if ch in _INVALID_FILENAME_CHARS else ch for ch in username)
    if not key.strip():
        return FALLBACK_KEY
    return key


def save_path_for(root: Path, username: str) -> Path:
    return root / f"{storage_key(username)}{SAVE_SUFFIX}"

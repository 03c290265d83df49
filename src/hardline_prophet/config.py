from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .progression.leveling import BASE_XP

logger = logging.getLogger(__name__)

ENV_SAVE_DIR = "HARDLINE_SAVE_DIR"
ENV_CONTENT_DIR = "HARDLINE_CONTENT_DIR"
ENV_DEV_MODE = "HARDLINE_DEV_MODE"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class GameConfig:
    """Central game configuration.

    - base_tick_interval_ms: tick interval before the hack speed factor is applied.
    - trace_increment: trace added each time a mission's trace risk fires.
    - base_xp: scale of the leveling curve (XP for level L is base_xp * (L-1)^1.5).
    - save_dir / content_dir: override the platform save directory and the
      bundled content catalogs. None means "use the default".
    - dev_mode: relax save integrity enforcement.
    """

    base_tick_interval_ms: float = 2000.0
    trace_increment: float = 0.5
    base_xp: float = BASE_XP
    save_dir: Optional[Path] = None
    content_dir: Optional[Path] = None
    dev_mode: bool = False

    def __post_init__(self) -> None:
        if self.base_tick_interval_ms <= 0:
            raise ValueError("base_tick_interval_ms must be > 0")
        if self.base_xp <= 0:
            raise ValueError("base_xp must be > 0")
        if self.trace_increment < 0:
            logger.error("Negative trace_increment %s; clamping to 0", self.trace_increment)
            self.trace_increment = 0.0

    @classmethod
    def from_json(cls, path: Path) -> "GameConfig":
        """Load configuration from JSON file. Missing fields fall back to defaults."""
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
        cfg = cls()
        if "base_tick_interval_ms" in raw:
            cfg.base_tick_interval_ms = float(raw["base_tick_interval_ms"])
        if "trace_increment" in raw:
            cfg.trace_increment = float(raw["trace_increment"])
        if "base_xp" in raw:
            cfg.base_xp = float(raw["base_xp"])
        if raw.get("save_dir"):
            cfg.save_dir = Path(raw["save_dir"]).expanduser()
        if raw.get("content_dir"):
            cfg.content_dir = Path(raw["content_dir"]).expanduser()
        if "dev_mode" in raw:
            cfg.dev_mode = bool(raw["dev_mode"])
        cfg.__post_init__()
        return cfg

    def to_json(self, path: Path) -> None:
        """Persist configuration to a JSON file."""
        with path.open("w", encoding="utf-8") as f:
            json.dump(
                {
                    "base_tick_interval_ms": self.base_tick_interval_ms,
                    "trace_increment": self.trace_increment,
                    "base_xp": self.base_xp,
                    "save_dir": str(self.save_dir) if self.save_dir else None,
                    "content_dir": str(self.content_dir) if self.content_dir else None,
                    "dev_mode": self.dev_mode,
                },
                f,
                indent=2,
                sort_keys=True,
            )

    def apply_env(self) -> "GameConfig":
        """Apply environment variable overrides in place and return self."""
        save_dir = os.getenv(ENV_SAVE_DIR)
        if save_dir:
            self.save_dir = Path(save_dir).expanduser()
        content_dir = os.getenv(ENV_CONTENT_DIR)
        if content_dir:
            self.content_dir = Path(content_dir).expanduser()
        dev = os.getenv(ENV_DEV_MODE)
        if dev is not None:
            self.dev_mode = dev.strip().lower() in _TRUTHY
        return self

    @classmethod
    def from_env(cls) -> "GameConfig":
        return cls().apply_env()

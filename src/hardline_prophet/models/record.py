from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

# Increment when making breaking schema changes, and register a migration step.
CURRENT_SCHEMA_VERSION = 3
OLDEST_SUPPORTED_VERSION = 1

DEFAULT_STARTING_LEVEL = 1
DEFAULT_STARTING_EXPERIENCE = 0.0
DEFAULT_STARTING_CREDITS = 100
DEFAULT_STARTING_HACK_SPEED = 5
DEFAULT_STARTING_STEALTH = 5
DEFAULT_STARTING_DATA_YIELD = 0

TRACE_MIN = 0.0
TRACE_MAX = 100.0

# "+5 Stealth", "+10% HackSpeed", "-2 data_yield"
_UPGRADE_RE = re.compile(r"^\s*([+-]?\d+(?:\.\d+)?)\s*(%)?\s+([A-Za-z_ ]+?)\s*$")
_STAT_ALIASES = {"hackspeed": "hack_speed", "stealth": "stealth", "datayield": "data_yield"}


class PlayerClass(Enum):
    """Starting classes available to the player."""

    NONE = "None"
    RUNNER = "Runner"
    BROKER = "Broker"
    GHOST = "Ghost"

    @classmethod
    def parse(cls, value: Any) -> "PlayerClass":
        """Decode a stored class value.

        Accepts the stored name (any case), None, or the legacy integer index.
        """
        if value is None:
            return cls.NONE
        if isinstance(value, PlayerClass):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            members = list(cls)
            if 0 <= value < len(members):
                return members[value]
            raise ValueError(f"Unknown player class index: {value}")
        if isinstance(value, str):
            for member in cls:
                if value.strip().lower() in (member.value.lower(), member.name.lower()):
                    return member
            if value.strip().lower() == "undefined":
                return cls.NONE
        raise ValueError(f"Unknown player class: {value!r}")


def clamp_trace(value: float) -> float:
    return max(TRACE_MIN, min(TRACE_MAX, float(value)))


def _str_tuple(values: Optional[Iterable[Any]], name: str) -> Tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
        raise TypeError(f"{name} must be a sequence of strings")
    out = tuple(values)
    for v in out:
        if not isinstance(v, str):
            raise TypeError(f"{name} must contain only strings, got {v!r}")
    return out


@dataclass(frozen=True)
class PlayerStats:
    hack_speed: int = DEFAULT_STARTING_HACK_SPEED
    stealth: int = DEFAULT_STARTING_STEALTH
    data_yield: int = DEFAULT_STARTING_DATA_YIELD

    def __post_init__(self) -> None:
        for name in ("hack_speed", "stealth", "data_yield"):
            object.__setattr__(self, name, int(getattr(self, name)))

    def adjusted(self, hack_speed: int = 0, stealth: int = 0, data_yield: int = 0) -> "PlayerStats":
        return PlayerStats(
            hack_speed=self.hack_speed + hack_speed,
            stealth=self.stealth + stealth,
            data_yield=self.data_yield + data_yield,
        )

    def apply_upgrade(self, effect: str) -> "PlayerStats":
        """Return stats with an item effect such as ``+5 Stealth`` or ``+10% HackSpeed`` applied.

        Percentage bonuses are taken of the current value and rounded up.
        Effects that do not name a known stat leave the stats unchanged.
        """
        match = _UPGRADE_RE.match(effect or "")
        stat = _STAT_ALIASES.get(match.group(3).replace(" ", "").replace("_", "").lower()) if match else None
        if stat is None:
            logger.debug("No stat upgrade recognised in effect %r", effect)
            return self
        amount = float(match.group(1))
        current = getattr(self, stat)
        delta = math.ceil(current * amount / 100.0) if match.group(2) else int(amount)
        return self.adjusted(**{stat: delta})

    def to_dict(self) -> Dict[str, int]:
        return {"hack_speed": self.hack_speed, "stealth": self.stealth, "data_yield": self.data_yield}

    @staticmethod
    def from_dict(data: Optional[Mapping[str, Any]]) -> "PlayerStats":
        if data is None:
            return PlayerStats()
        if not isinstance(data, Mapping):
            raise TypeError("stats must be an object")
        return PlayerStats(
            hack_speed=data.get("hack_speed", DEFAULT_STARTING_HACK_SPEED),
            stealth=data.get("stealth", DEFAULT_STARTING_STEALTH),
            data_yield=data.get("data_yield", DEFAULT_STARTING_DATA_YIELD),
        )


@dataclass(frozen=True)
class PlayerRecord:
    """Versioned, serializable snapshot of one player's progress.

    Instances are immutable. Every change produces a new record through
    :meth:`with_changes`, so whoever holds the current record only ever swaps
    one value for another.

    Construction normalizes field types (floats stay floats, sequences become
    tuples) and clamps ``trace_level`` into [0, 100]. Out-of-range values that
    cannot be clamped raise ``ValueError``.
    """

    schema_version: int = CURRENT_SCHEMA_VERSION
    username: str = ""
    level: int = DEFAULT_STARTING_LEVEL
    experience: float = DEFAULT_STARTING_EXPERIENCE
    credits: int = DEFAULT_STARTING_CREDITS
    stats: PlayerStats = field(default_factory=PlayerStats)
    active_mission_ids: Tuple[str, ...] = ()
    unlocked_perk_ids: Tuple[str, ...] = ()
    checksum: Optional[str] = None
    is_dev_save: bool = False
    active_mission_id: Optional[str] = None
    active_mission_progress: int = 0
    selected_class: PlayerClass = PlayerClass.NONE
    selected_starting_perk_ids: Tuple[str, ...] = ()
    trace_level: float = 0.0

    def __post_init__(self) -> None:
        if not isinstance(self.username, str):
            raise TypeError("username must be a string")
        if self.checksum is not None and not isinstance(self.checksum, str):
            raise TypeError("checksum must be a string or None")
        if self.active_mission_id is not None and not isinstance(self.active_mission_id, str):
            raise TypeError("active_mission_id must be a string or None")
        if not isinstance(self.stats, PlayerStats):
            raise TypeError("stats must be a PlayerStats instance")

        object.__setattr__(self, "schema_version", int(self.schema_version))
        object.__setattr__(self, "level", int(self.level))
        object.__setattr__(self, "experience", float(self.experience))
        object.__setattr__(self, "credits", int(self.credits))
        object.__setattr__(self, "active_mission_progress", int(self.active_mission_progress))
        object.__setattr__(self, "is_dev_save", bool(self.is_dev_save))
        object.__setattr__(self, "trace_level", clamp_trace(self.trace_level))
        object.__setattr__(self, "selected_class", PlayerClass.parse(self.selected_class))
        object.__setattr__(self, "active_mission_ids", _str_tuple(self.active_mission_ids, "active_mission_ids"))
        object.__setattr__(self, "unlocked_perk_ids", _str_tuple(self.unlocked_perk_ids, "unlocked_perk_ids"))
        object.__setattr__(
            self,
            "selected_starting_perk_ids",
            _str_tuple(self.selected_starting_perk_ids, "selected_starting_perk_ids"),
        )

        if self.level < 1:
            raise ValueError("level must be >= 1")
        if self.experience < 0:
            raise ValueError("experience must be >= 0")
        if self.credits < 0:
            raise ValueError("credits must be >= 0")
        if self.active_mission_progress < 0:
            raise ValueError("active_mission_progress must be >= 0")

    @classmethod
    def new(cls, username: str) -> "PlayerRecord":
        """A fresh record for a player with no prior save."""
        return cls(username=username)

    def with_changes(self, **changes: Any) -> "PlayerRecord":
        return replace(self, **changes)

    def without_checksum(self) -> "PlayerRecord":
        return replace(self, checksum=None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "username": self.username,
            "level": self.level,
            "experience": self.experience,
            "credits": self.credits,
            "stats": self.stats.to_dict(),
            "active_mission_ids": list(self.active_mission_ids),
            "unlocked_perk_ids": list(self.unlocked_perk_ids),
            "checksum": self.checksum,
            "is_dev_save": self.is_dev_save,
            "active_mission_id": self.active_mission_id,
            "active_mission_progress": self.active_mission_progress,
            "selected_class": self.selected_class.value,
            "selected_starting_perk_ids": list(self.selected_starting_perk_ids),
            "trace_level": self.trace_level,
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "PlayerRecord":
        """Decode a stored payload. Missing fields take defaults; unknown fields are ignored."""
        if not isinstance(data, Mapping):
            raise TypeError("save payload must be a JSON object")
        return PlayerRecord(
            schema_version=data.get("schema_version", CURRENT_SCHEMA_VERSION),
            username=data.get("username", ""),
            level=data.get("level", DEFAULT_STARTING_LEVEL),
            experience=data.get("experience", DEFAULT_STARTING_EXPERIENCE),
            credits=data.get("credits", DEFAULT_STARTING_CREDITS),
            stats=PlayerStats.from_dict(data.get("stats")),
            active_mission_ids=data.get("active_mission_ids") or (),
            unlocked_perk_ids=data.get("unlocked_perk_ids") or (),
            checksum=data.get("checksum"),
            is_dev_save=data.get("is_dev_save", False),
            active_mission_id=data.get("active_mission_id"),
            active_mission_progress=data.get("active_mission_progress", 0),
            selected_class=data.get("selected_class"),
            selected_starting_perk_ids=data.get("selected_starting_perk_ids") or (),
            trace_level=data.get("trace_level", 0.0),
        )

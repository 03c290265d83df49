"""Data model: the persisted player record and read-only content definitions."""

from .content import (
    FlavorEventDefinition,
    FlavorEventEffect,
    FlavorEventTrigger,
    ItemDefinition,
    MissionDefinition,
    MissionReward,
)
from .record import (
    CURRENT_SCHEMA_VERSION,
    OLDEST_SUPPORTED_VERSION,
    PlayerClass,
    PlayerRecord,
    PlayerStats,
)

__all__ = [
    "CURRENT_SCHEMA_VERSION",
    "OLDEST_SUPPORTED_VERSION",
    "PlayerClass",
    "PlayerRecord",
    "PlayerStats",
    "FlavorEventDefinition",
    "FlavorEventEffect",
    "FlavorEventTrigger",
    "ItemDefinition",
    "MissionDefinition",
    "MissionReward",
]

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class FlavorEventTrigger(Enum):
    """Game moments a flavor event can be attached to."""

    ON_TICK = "OnTick"
    ON_LOGIN = "OnLogin"
    ON_LEVEL_UP = "OnLevelUp"

    @classmethod
    def parse(cls, value: Any) -> "FlavorEventTrigger":
        if isinstance(value, FlavorEventTrigger):
            return value
        if isinstance(value, str):
            for member in cls:
                if value in (member.value, member.name):
                    return member
        raise ValueError(f"Unknown flavor event trigger: {value!r}")


@dataclass(frozen=True)
class MissionReward:
    credits: int = 0
    xp: float = 0.0

    @staticmethod
    def from_dict(data: Optional[Mapping[str, Any]]) -> "MissionReward":
        data = data or {}
        return MissionReward(credits=int(data.get("credits", 0)), xp=float(data.get("xp", 0.0)))


@dataclass(frozen=True)
class MissionDefinition:
    """A mission template. ``trace_risk`` is the per-tick chance of raising trace."""

    id: str
    name: str = "Unnamed Mission"
    duration_ticks: int = 10
    trace_risk: float = 0.0
    reward: MissionReward = field(default_factory=MissionReward)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("MissionDefinition.id must be a non-empty string")
        if self.duration_ticks <= 0:
            raise ValueError(f"Mission {self.id}: duration_ticks must be > 0")
        if not 0.0 <= self.trace_risk <= 1.0:
            raise ValueError(f"Mission {self.id}: trace_risk must be within [0, 1]")

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "MissionDefinition":
        return MissionDefinition(
            id=data["id"],
            name=data.get("name", "Unnamed Mission"),
            duration_ticks=int(data.get("duration_ticks", 10)),
            trace_risk=float(data.get("trace_risk", 0.0)),
            reward=MissionReward.from_dict(data.get("reward")),
        )


@dataclass(frozen=True)
class FlavorEventEffect:
    """Structured effect of a flavor event, e.g. ``+10% hack_speed``.

    The tick logic only reports effects; it does not apply them.
    """

    stat: str
    value: float = 0.0
    is_percentage: bool = False

    def describe(self) -> str:
        sign = "+" if self.value >= 0 else ""
        suffix = "%" if self.is_percentage else ""
        return f"{sign}{self.value:g}{suffix} {self.stat}"

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "FlavorEventEffect":
        return FlavorEventEffect(
            stat=data["stat"],
            value=float(data.get("value", 0.0)),
            is_percentage=bool(data.get("is_percentage", False)),
        )


@dataclass(frozen=True)
class FlavorEventDefinition:
    id: str
    trigger: FlavorEventTrigger
    chance: float = 0.0
    text: str = "...static..."
    effect: Optional[FlavorEventEffect] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.chance <= 1.0:
            raise ValueError(f"Flavor event {self.id}: chance must be within [0, 1]")

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "FlavorEventDefinition":
        effect = data.get("effect")
        return FlavorEventDefinition(
            id=data["id"],
            trigger=FlavorEventTrigger.parse(data["trigger"]),
            chance=float(data.get("chance", 0.0)),
            text=data.get("text", "...static..."),
            effect=FlavorEventEffect.from_dict(effect) if effect else None,
        )


@dataclass(frozen=True)
class ItemDefinition:
    """An item sold in the shop."""

    id: str
    name: str = "Unknown Item"
    cost: int = 0
    effect_description: str = "Does something mysterious."

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "cost": self.cost,
            "effect_description": self.effect_description,
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "ItemDefinition":
        return ItemDefinition(
            id=data["id"],
            name=data.get("name", "Unknown Item"),
            cost=int(data.get("cost", 0)),
            effect_description=data.get("effect_description", "Does something mysterious."),
        )

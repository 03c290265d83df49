"""Starting profile selection: a class plus starting perks for a new runner."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from .errors import ProfileError
from .models.record import PlayerClass, PlayerRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassBonus:
    hack_speed: int = 0
    stealth: int = 0
    data_yield: int = 0
    credits: int = 0
    description: str = ""


@dataclass(frozen=True)
class StartingPerk:
    id: str
    name: str
    description: str
    bonus_credits: int = 0


CLASS_BONUSES: Dict[PlayerClass, ClassBonus] = {
    PlayerClass.RUNNER: ClassBonus(
        hack_speed=10, stealth=5, description="+10 Hack Speed, +5 Stealth. Fast in, fast out."
    ),
    PlayerClass.BROKER: ClassBonus(
        stealth=5,
        data_yield=10,
        credits=150,
        description="+5 Stealth, +10 Data Yield. Starts with 250 credits.",
    ),
    PlayerClass.GHOST: ClassBonus(
        hack_speed=5, stealth=15, description="+5 Hack Speed, +15 Stealth, 10% reduced trace."
    ),
}

STARTING_PERKS: Dict[str, StartingPerk] = {
    p.id: p
    for p in (
        StartingPerk("trace_dampener", "Trace Dampener", "-25% trace build-up rate."),
        StartingPerk("stim_surge", "Stim Surge", "First 5 missions complete instantly."),
        StartingPerk("seed_capital", "Seed Capital", "Start with an extra 500 credits.", bonus_credits=500),
        StartingPerk("soft_override", "Soft Override", "First failure is auto-converted to success."),
    )
}


def available_classes() -> List[PlayerClass]:
    return [c for c in PlayerClass if c is not PlayerClass.NONE]


def needs_profile(record: PlayerRecord) -> bool:
    """True when the player has not picked a class yet."""
    return record.selected_class is PlayerClass.NONE


def apply_starting_profile(
    record: PlayerRecord, player_class: PlayerClass, perk_ids: Iterable[str] = ()
) -> PlayerRecord:
    """Return a new record with the class bonuses and perk selections applied.

    Only ``seed_capital`` changes anything immediately; the other perks are
    recorded for systems that read ``selected_starting_perk_ids``.
    """
    try:
        chosen = PlayerClass.parse(player_class)
    except ValueError as e:
        raise ProfileError(str(e)) from e
    if chosen is PlayerClass.NONE:
        raise ProfileError("A starting class must be selected")
    if not needs_profile(record):
        raise ProfileError(
            f"Player {record.username!r} already selected class {record.selected_class.value}"
        )

    perks: List[StartingPerk] = []
    for perk_id in perk_ids:
        perk = STARTING_PERKS.get(perk_id)
        if perk is None:
            raise ProfileError(f"Unknown starting perk: {perk_id!r}")
        if perk in perks:
            raise ProfileError(f"Starting perk selected twice: {perk_id!r}")
        perks.append(perk)

    bonus = CLASS_BONUSES[chosen]
    credits = record.credits + bonus.credits + sum(p.bonus_credits for p in perks)
    perk_tuple: Tuple[str, ...] = tuple(p.id for p in perks)

    updated = record.with_changes(
        selected_class=chosen,
        selected_starting_perk_ids=perk_tuple,
        stats=record.stats.adjusted(
            hack_speed=bonus.hack_speed, stealth=bonus.stealth, data_yield=bonus.data_yield
        ),
        credits=credits,
    )
    logger.info(
        "Profile set for %s: class=%s perks=%s credits=%d",
        record.username,
        chosen.value,
        ",".join(perk_tuple) or "-",
        credits,
    )
    return updated

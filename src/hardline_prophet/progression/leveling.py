from __future__ import annotations

import logging
import math
from typing import Optional

logger = logging.getLogger(__name__)

# XP needed to reach level L is BASE_XP * (L - 1) ** 1.5
BASE_XP = 100.0
MAX_LEVEL = 9999


def xp_for_level(level: int, base_xp: float = BASE_XP) -> float:
    """Total XP required to reach ``level``. Level 1 needs nothing."""
    if level <= 1:
        return 0.0
    return base_xp * math.pow(level - 1, 1.5)


def level_for_experience(experience: float, base_xp: float = BASE_XP, max_level: int = MAX_LEVEL) -> int:
    """Return the highest level whose XP threshold ``experience`` has reached.

    Thresholds are walked upward from level 1 rather than inverted with a
    fractional power, so values sitting right on a boundary land on the same
    side every time. Negative experience is level 1.

    The walk stops at ``max_level``; reaching it is logged and the cap returned.
    """
    if experience < base_xp:
        return 1

    level = 1
    while level < max_level:
        # Threshold for level + 1 is base_xp * level ** 1.5
        if experience < base_xp * math.pow(level, 1.5):
            return level
        level += 1

    logger.warning("Level calculation reached the cap of %d (experience=%s)", max_level, experience)
    return max_level


def xp_to_next_level(experience: float, base_xp: float = BASE_XP, max_level: int = MAX_LEVEL) -> Optional[float]:
    """XP still needed for the next level, or None at the cap."""
    level = level_for_experience(experience, base_xp, max_level)
    if level >= max_level:
        return None
    return max(0.0, xp_for_level(level + 1, base_xp) - max(experience, 0.0))

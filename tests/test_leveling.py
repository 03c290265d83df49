import logging

import pytest

from hardline_prophet.progression.leveling import (
    BASE_XP,
    level_for_experience,
    xp_for_level,
    xp_to_next_level,
)


@pytest.mark.parametrize(
    "experience, expected",
    [
        (0, 1),
        (99.9, 1),
        (100, 2),
        (282.8, 2),
        (282.9, 3),
        (519.6, 3),
        (519.7, 4),
        (2699.9, 9),
        (2700, 10),
    ],
)
def test_level_boundaries(experience, expected):
    assert level_for_experience(experience) == expected


def test_negative_experience_is_level_one():
    assert level_for_experience(-50) == 1


def test_level_is_monotonic():
    levels = [level_for_experience(x * 7.5) for x in range(2000)]
    assert levels == sorted(levels)


def test_threshold_lands_on_its_level():
    for level in range(2, 40):
        assert level_for_experience(xp_for_level(level)) == level


def test_xp_for_level():
    assert xp_for_level(1) == 0.0
    assert xp_for_level(2) == BASE_XP
    assert xp_for_level(10) == pytest.approx(2700.0)


def test_custom_base_xp_scales_curve():
    assert level_for_experience(50, base_xp=50) == 2
    assert level_for_experience(49.9, base_xp=50) == 1


def test_cap_is_logged(caplog):
    with caplog.at_level(logging.WARNING):
        assert level_for_experience(1e12, max_level=5) == 5
    assert any("cap" in rec.message for rec in caplog.records)


def test_xp_to_next_level():
    assert xp_to_next_level(0) == pytest.approx(100.0)
    assert xp_to_next_level(150) == pytest.approx(100 * 2 ** 1.5 - 150)
    assert xp_to_next_level(1e9, max_level=3) is None

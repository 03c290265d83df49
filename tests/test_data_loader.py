import json
import logging
from pathlib import Path

import pytest

from hardline_prophet.data import load_content, load_flavor_events, load_items, load_missions
from hardline_prophet.errors import CatalogError
from hardline_prophet.models.content import FlavorEventTrigger


def write_json(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_bundled_content_loads():
    catalog = load_content()

    assert catalog.missions
    assert catalog.items
    assert catalog.default_mission_id == next(iter(catalog.missions))
    assert FlavorEventTrigger.ON_LOGIN in catalog.flavor_events
    for mission in catalog.missions.values():
        assert mission.duration_ticks >= 1
        assert 0.0 <= mission.trace_risk <= 1.0


def test_schema_defaults_are_applied(tmp_path: Path):
    path = write_json(tmp_path / "missions.json", [{"id": "bare"}])
    missions = load_missions(path)

    bare = missions["bare"]
    assert bare.name == "Unnamed Mission"
    assert bare.duration_ticks == 10
    assert bare.trace_risk == 0.0
    assert bare.reward.credits == 0 and bare.reward.xp == 0.0


def test_duplicate_ids_keep_first(tmp_path: Path, caplog):
    path = write_json(
        tmp_path / "missions.json",
        [
            {"id": "dup", "name": "First", "duration_ticks": 2},
            {"id": "other"},
            {"id": "dup", "name": "Second", "duration_ticks": 9},
        ],
    )
    with caplog.at_level(logging.WARNING):
        missions = load_missions(path)

    assert list(missions) == ["dup", "other"]
    assert missions["dup"].name == "First"
    assert any("Duplicate id" in rec.message for rec in caplog.records)


def test_missing_file_yields_empty_catalog(tmp_path: Path, caplog):
    with caplog.at_level(logging.WARNING):
        catalog = load_content(tmp_path)

    assert catalog.missions == {}
    assert catalog.items == {}
    assert catalog.flavor_events == {}
    assert catalog.default_mission_id is None
    assert any("not found" in rec.message for rec in caplog.records)


def test_invalid_json_raises(tmp_path: Path):
    path = tmp_path / "items.json"
    path.write_text("[{ nope", encoding="utf-8")
    with pytest.raises(CatalogError) as exc:
        load_items(path)
    assert "line" in str(exc.value)


def test_schema_violation_raises_with_location(tmp_path: Path):
    path = write_json(tmp_path / "missions.json", [{"id": "risky", "trace_risk": 2}])
    with pytest.raises(CatalogError) as exc:
        load_missions(path)
    assert "0/trace_risk" in str(exc.value)


def test_unknown_fields_are_rejected(tmp_path: Path):
    path = write_json(tmp_path / "items.json", [{"id": "x", "cost": 1, "colour": "red"}])
    with pytest.raises(CatalogError):
        load_items(path)


def test_flavor_events_grouped_by_trigger_in_file_order(tmp_path: Path):
    path = write_json(
        tmp_path / "flavor_events.json",
        [
            {"id": "t1", "trigger": "OnTick", "chance": 0.1, "text": "one"},
            {"id": "l1", "trigger": "OnLogin", "chance": 1, "text": "hello"},
            {"id": "t2", "trigger": "OnTick", "chance": 0.2, "text": "two",
             "effect": {"stat": "hack_speed", "value": 5}},
        ],
    )
    events = load_flavor_events(path)

    assert [e.id for e in events[FlavorEventTrigger.ON_TICK]] == ["t1", "t2"]
    assert [e.id for e in events[FlavorEventTrigger.ON_LOGIN]] == ["l1"]
    effect = events[FlavorEventTrigger.ON_TICK][1].effect
    assert effect.stat == "hack_speed" and effect.is_percentage is False


def test_unknown_trigger_is_rejected(tmp_path: Path):
    path = write_json(tmp_path / "flavor_events.json", [{"id": "x", "trigger": "OnLogout", "text": "bye"}])
    with pytest.raises(CatalogError):
        load_flavor_events(path)

import asyncio
import json
import logging
from pathlib import Path

import pytest

from hardline_prophet.models.record import CURRENT_SCHEMA_VERSION, PlayerClass, PlayerRecord, PlayerStats
from hardline_prophet.save import (
    CorruptSaveError,
    InvalidArgumentError,
    SaveIntegrityError,
    StateStore,
    StorageIOError,
    UnsupportedVersionError,
)
from hardline_prophet.save.checksum import compute_checksum
from hardline_prophet.save.paths import ENV_SAVE_DIR, default_save_root, storage_key


def make_store(tmp_path: Path, **kwargs) -> StateStore:
    return StateStore(tmp_path / "saves", **kwargs)


def write_payload(store: StateStore, username: str, data) -> Path:
    path = store.path_for(username)
    path.parent.mkdir(parents=True, exist_ok=True)
    text = data if isinstance(data, str) else json.dumps(data, indent=2)
    path.write_text(text, encoding="utf-8")
    return path


def test_missing_save_returns_fresh_record(tmp_path: Path):
    store = make_store(tmp_path)
    record = store.load("NewbieHacker")

    assert record.username == "NewbieHacker"
    assert record.level == 1
    assert record.credits == 100
    assert record.checksum is None
    assert record.schema_version == CURRENT_SCHEMA_VERSION
    assert not store.exists("NewbieHacker")


def test_save_then_load_validates(tmp_path: Path):
    store = make_store(tmp_path)
    store.save(PlayerRecord.new("SavingPlayer").with_changes(credits=12345))

    loaded = store.load("SavingPlayer")
    assert loaded.credits == 12345
    assert loaded.checksum is not None
    assert store.validate_integrity(loaded) is True


def test_round_trip_preserves_every_field(tmp_path: Path):
    store = make_store(tmp_path)
    original = PlayerRecord(
        schema_version=1,
        username="Roundtrip",
        level=4,
        experience=612.25,
        credits=980,
        stats=PlayerStats(hack_speed=17, stealth=9, data_yield=4),
        active_mission_ids=("a", "b"),
        unlocked_perk_ids=("perk_x",),
        checksum="stale",
        active_mission_id="corp_data_siphon",
        active_mission_progress=7,
        selected_class=PlayerClass.GHOST,
        selected_starting_perk_ids=("trace_dampener",),
        trace_level=42.5,
    )

    saved = store.save(original)
    loaded = store.load("Roundtrip")

    assert loaded == saved
    assert loaded.with_changes(schema_version=1, checksum="stale") == original


def test_save_does_not_mutate_and_returns_stamped_copy(tmp_path: Path):
    store = make_store(tmp_path)
    record = PlayerRecord.new("Copycat").with_changes(schema_version=2)

    saved = store.save(record)

    assert record.checksum is None
    assert record.schema_version == 2
    assert saved.schema_version == CURRENT_SCHEMA_VERSION
    assert saved.checksum == compute_checksum(saved)


def test_saved_payload_is_human_readable_snake_case(tmp_path: Path):
    store = make_store(tmp_path)
    store.save(PlayerRecord.new("Reader"))
    text = store.path_for("Reader").read_text(encoding="utf-8")
    data = json.loads(text)

    assert "\n" in text
    assert data["schema_version"] == CURRENT_SCHEMA_VERSION
    assert data["stats"] == {"data_yield": 0, "hack_speed": 5, "stealth": 5}
    assert data["selected_class"] == "None"
    assert list(store.base_dir.glob("*.tmp")) == []


def test_v2_payload_without_trace_loads_at_current_version(tmp_path: Path):
    store = make_store(tmp_path)
    write_payload(
        store,
        "Veteran",
        {
            "schema_version": 2,
            "username": "Veteran",
            "level": 3,
            "experience": 300.0,
            "credits": 450,
            "active_mission_id": "ping_sweep",
            "active_mission_progress": 2,
            "checksum": "whatever-v2-wrote",
        },
    )

    record = store.load("Veteran")
    assert record.trace_level == 0.0
    assert record.schema_version == CURRENT_SCHEMA_VERSION
    assert record.active_mission_id == "ping_sweep"
    assert store.validate_integrity(record) is True


def test_v1_payload_without_version_field_is_migrated(tmp_path: Path):
    store = make_store(tmp_path)
    write_payload(store, "Ancient", {"username": "Ancient", "credits": 5})

    record = store.load("Ancient")
    assert record.schema_version == CURRENT_SCHEMA_VERSION
    assert record.credits == 5
    assert record.active_mission_id is None


def wrong_checksum_payload(username: str) -> dict:
    data = PlayerRecord.new(username).with_changes(credits=999).to_dict()
    data["checksum"] = "WRONG"
    return data


def test_wrong_checksum_raises_in_normal_mode(tmp_path: Path):
    store = make_store(tmp_path)
    write_payload(store, "Tamperer", wrong_checksum_payload("Tamperer"))

    with pytest.raises(SaveIntegrityError):
        store.load("Tamperer")


def test_wrong_checksum_loads_in_dev_mode(tmp_path: Path, caplog):
    messages = []
    store = make_store(tmp_path, dev_mode=True, diagnostics=messages.append)
    write_payload(store, "Tamperer", wrong_checksum_payload("Tamperer"))

    with caplog.at_level(logging.WARNING):
        record = store.load("Tamperer")

    assert record.credits == 999
    assert len(messages) == 1 and "mismatch" in messages[0]
    assert any("mismatch" in rec.message for rec in caplog.records)

    # Usable: saving re-stamps a valid checksum
    store.dev_mode = False
    store.save(record)
    assert store.load("Tamperer").credits == 999


def test_dev_save_flag_relaxes_integrity(tmp_path: Path):
    store = make_store(tmp_path)
    data = wrong_checksum_payload("DevBuild")
    data["is_dev_save"] = True
    write_payload(store, "DevBuild", data)

    record = store.load("DevBuild")
    assert record.is_dev_save is True


def test_missing_checksum_at_current_version_is_integrity_error(tmp_path: Path):
    store = make_store(tmp_path)
    data = PlayerRecord.new("NoSum").to_dict()
    write_payload(store, "NoSum", data)

    with pytest.raises(SaveIntegrityError):
        store.load("NoSum")


def test_hand_edited_payload_with_other_formatting_still_verifies(tmp_path: Path):
    store = make_store(tmp_path)
    saved = store.save(PlayerRecord.new("Compact").with_changes(credits=321))
    compact = json.dumps(saved.to_dict(), separators=(",", ":"))
    write_payload(store, "Compact", compact)

    assert store.load("Compact").credits == 321


def test_future_version_is_unsupported(tmp_path: Path):
    store = make_store(tmp_path)
    data = PlayerRecord.new("Future").to_dict()
    data["schema_version"] = CURRENT_SCHEMA_VERSION + 1
    write_payload(store, "Future", data)

    with pytest.raises(UnsupportedVersionError):
        store.load("Future")


def test_corrupt_json_is_corrupt_save(tmp_path: Path):
    store = make_store(tmp_path)
    write_payload(store, "Broken", "{ not valid JSON")

    with pytest.raises(CorruptSaveError):
        store.load("Broken")


def test_wrongly_typed_fields_are_corrupt(tmp_path: Path):
    store = make_store(tmp_path)
    data = PlayerRecord.new("Typo").to_dict()
    data["level"] = "high"
    write_payload(store, "Typo", data)

    with pytest.raises(CorruptSaveError):
        store.load("Typo")


def test_unreadable_save_is_storage_error(tmp_path: Path):
    store = make_store(tmp_path)
    # A directory where the file should be cannot be read as text
    store.path_for("Dir").mkdir(parents=True)

    with pytest.raises(StorageIOError):
        store.load("Dir")


def test_empty_username_cannot_be_saved(tmp_path: Path):
    store = make_store(tmp_path)
    with pytest.raises(InvalidArgumentError):
        store.save(PlayerRecord.new(""))
    with pytest.raises(ValueError):
        store.save(PlayerRecord.new(""))


def test_whitespace_username_uses_fallback_key(tmp_path: Path):
    store = make_store(tmp_path)
    store.save(PlayerRecord.new("   "))

    assert (store.base_dir / "default_user.save.json").exists()
    assert store.load("   ").username == "   "


def test_storage_key_sanitizes_names():
    assert storage_key('a<b>c:d"e/f\\g|h?i*j') == "a_b_c_d_e_f_g_h_i_j"
    assert storage_key("tab\there") == "tab_here"
    assert storage_key("") == "default_user"
    assert storage_key("   ") == "default_user"
    assert storage_key("Neo") == "Neo"


def test_sanitized_names_get_their_own_file(tmp_path: Path):
    store = make_store(tmp_path)
    store.save(PlayerRecord.new("zero/cool"))
    assert store.path_for("zero/cool").name == "zero_cool.save.json"
    assert store.load("zero/cool").username == "zero/cool"


def test_load_warns_when_key_belongs_to_another_name(tmp_path: Path, caplog):
    store = make_store(tmp_path)
    store.save(PlayerRecord.new("zero/cool"))

    with caplog.at_level(logging.WARNING):
        record = store.load("zero_cool")

    assert record.username == "zero/cool"
    assert any("belongs to" in rec.message for rec in caplog.records)

    caplog.clear()
    with caplog.at_level(logging.WARNING):
        store.load("zero/cool")
    assert not any("belongs to" in rec.message for rec in caplog.records)


def test_delete(tmp_path: Path):
    store = make_store(tmp_path)
    store.save(PlayerRecord.new("Gone"))
    assert store.delete("Gone") is True
    assert store.delete("Gone") is False
    assert store.load("Gone").checksum is None


def test_default_root_honors_env(tmp_path: Path, monkeypatch):
    monkeypatch.setenv(ENV_SAVE_DIR, str(tmp_path / "custom"))
    assert default_save_root() == (tmp_path / "custom").resolve()
    assert StateStore().base_dir == (tmp_path / "custom").resolve()


def test_default_root_uses_platform_data_dir(monkeypatch):
    monkeypatch.delenv(ENV_SAVE_DIR, raising=False)
    root = default_save_root()
    assert root.name == "Saves"
    assert "HardlineProphet" in str(root)


def test_async_load_and_save(tmp_path: Path):
    store = make_store(tmp_path)

    async def scenario():
        saved = await store.save_async(PlayerRecord.new("AsyncRunner").with_changes(credits=55))
        loaded = await store.load_async("AsyncRunner")
        return saved, loaded

    saved, loaded = asyncio.run(scenario())
    assert loaded == saved
    assert loaded.credits == 55

"""Stepwise upgrades of stored player records to the current schema.

A payload written at version ``n`` is decoded permissively into a
:class:`PlayerRecord` stamped ``n``, then passed through one step per version
until it reaches :data:`CURRENT_SCHEMA_VERSION`. Every step returns a new
record stamped with its target version and a checksum for that version.

Schema history:

- v1: username, level, experience, credits, stats, active_mission_ids,
  unlocked_perk_ids, is_dev_save, checksum. No ``schema_version`` field.
- v2: adds ``schema_version``, ``active_mission_id`` and
  ``active_mission_progress``.
- v3: adds ``selected_class``, ``selected_starting_perk_ids`` and
  ``trace_level``.

To add v4: write ``_v3_to_v4`` and register it in ``MIGRATIONS[3]``.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Mapping, Union

from ..models.record import (
    CURRENT_SCHEMA_VERSION,
    OLDEST_SUPPORTED_VERSION,
    PlayerClass,
    PlayerRecord,
)
from .checksum import with_checksum
from .errors import CorruptSaveError, UnsupportedVersionError

logger = logging.getLogger(__name__)

MigrationStep = Callable[[PlayerRecord], PlayerRecord]
RawPayload = Union[str, bytes, Mapping[str, Any]]


def _v1_to_v2(record: PlayerRecord) -> PlayerRecord:
    return with_checksum(
        record.with_changes(
            schema_version=2,
            active_mission_id=None,
            active_mission_progress=0,
            checksum=None,
        )
    )


def _v2_to_v3(record: PlayerRecord) -> PlayerRecord:
    return with_checksum(
        record.with_changes(
            schema_version=3,
            selected_class=PlayerClass.NONE,
            selected_starting_perk_ids=(),
            trace_level=0.0,
            checksum=None,
        )
    )


# from_version -> step producing from_version + 1
MIGRATIONS: Dict[int, MigrationStep] = {
    1: _v1_to_v2,
    2: _v2_to_v3,
}


def decode_payload(raw: RawPayload) -> Dict[str, Any]:
    """Parse raw save text into a mapping, raising CorruptSaveError on failure."""
    if isinstance(raw, Mapping):
        return dict(raw)
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
        raise CorruptSaveError(f"Invalid save JSON: {e}") from e
    if not isinstance(data, dict):
        raise CorruptSaveError("Save payload must be a JSON object")
    return data


def sniff_version(data: Mapping[str, Any]) -> int:
    """Read only the schema version; saves written before v2 carry none."""
    version = data.get("schema_version", OLDEST_SUPPORTED_VERSION)
    if isinstance(version, bool) or not isinstance(version, int):
        raise CorruptSaveError(f"Invalid schema_version: {version!r}")
    return version


def _decode_record(data: Mapping[str, Any], version: int) -> PlayerRecord:
    try:
        record = PlayerRecord.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise CorruptSaveError(f"Malformed v{version} save payload: {e}") from e
    return record.with_changes(schema_version=version)


def migrate(raw_payload: RawPayload, detected_version: int) -> PlayerRecord:
    """Upgrade a payload at ``detected_version`` to the current schema.

    Raises:
        UnsupportedVersionError: version below the oldest supported or not older than current.
        CorruptSaveError: the payload cannot be decoded.
    """
    if not OLDEST_SUPPORTED_VERSION <= detected_version < CURRENT_SCHEMA_VERSION:
        raise UnsupportedVersionError(detected_version, OLDEST_SUPPORTED_VERSION, CURRENT_SCHEMA_VERSION)

    record = _decode_record(decode_payload(raw_payload), detected_version)
    for version in range(detected_version, CURRENT_SCHEMA_VERSION):
        step = MIGRATIONS.get(version)
        if step is None:
            raise UnsupportedVersionError(version, OLDEST_SUPPORTED_VERSION, CURRENT_SCHEMA_VERSION)
        try:
            record = step(record)
        except (TypeError, ValueError) as e:
            raise CorruptSaveError(f"Migration v{version}->v{version + 1} failed: {e}") from e
        logger.debug("Migrated save for %r from v%d to v%d", record.username, version, record.schema_version)
    return record

"""Loading of the static content catalogs (missions, items, flavor events).

Each catalog is a JSON array validated against a bundled JSON Schema. Schema
defaults are injected into the documents before they become model objects,
so content authors only need to write the fields they care about.
"""
from __future__ import annotations

import json
import logging
from copy import deepcopy
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar, Union

from jsonschema import Draft202012Validator, validators

from ..errors import CatalogError
from ..models.content import (
    FlavorEventDefinition,
    FlavorEventTrigger,
    ItemDefinition,
    MissionDefinition,
)

logger = logging.getLogger(__name__)

MISSIONS_FILE = "missions.json"
ITEMS_FILE = "items.json"
FLAVOR_EVENTS_FILE = "flavor_events.json"

T = TypeVar("T")
Source = Union[Path, Any]  # Path or importlib.resources Traversable


def _extend_with_default(validator_class):
    """Extend a jsonschema validator to set defaults onto instances.

    When a property has a 'default' and is missing on the instance, it is
    injected before further validation.
    """

    validate_properties = validator_class.VALIDATORS["properties"]

    def set_defaults(validator, properties, instance, schema):
        if isinstance(instance, dict):
            for prop, subschema in properties.items():
                if "default" in subschema and prop not in instance:
                    instance[prop] = deepcopy(subschema["default"])
        yield from validate_properties(validator, properties, instance, schema)

    return validators.extend(validator_class, {"properties": set_defaults})


DefaultingValidator = _extend_with_default(Draft202012Validator)


def _bundled(*parts: str):
    node = resources.files("hardline_prophet.data")
    for part in parts:
        node = node / part
    return node


def load_schema(name: str) -> Dict[str, Any]:
    source = _bundled("schemas", f"{name}.schema.json")
    return json.loads(source.read_text(encoding="utf-8"))


def _read_json(source: Source) -> Any:
    try:
        return json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise CatalogError(f"Failed to parse {source} (line {e.lineno}, column {e.colno}): {e.msg}") from e
    except OSError as e:
        raise CatalogError(f"Failed to read {source}: {e}") from e


def _format_errors(source: Source, errors) -> str:
    lines = [f"Schema validation failed for {source}:"]
    for err in errors:
        path = "/".join(str(p) for p in err.path) or "<root>"
        lines.append(f" - at {path}: {err.message}")
    return "\n".join(lines)


def _load_documents(source: Source, schema_name: str) -> List[Dict[str, Any]]:
    """Read and validate a catalog file. A missing file yields an empty catalog."""
    if not source.is_file():
        logger.warning("Content file %s not found; using an empty catalog", source)
        return []
    data = _read_json(source)
    if data is None:
        logger.warning("Content file %s is empty", source)
        return []
    validator = DefaultingValidator(load_schema(schema_name))
    errors = sorted(validator.iter_errors(data), key=lambda e: list(e.path))
    if errors:
        raise CatalogError(_format_errors(source, errors))
    return data


def _index_by_id(docs: List[Dict[str, Any]], build: Callable[[Mapping[str, Any]], T], source: Source) -> Dict[str, T]:
    """Build model objects keyed by id; the first occurrence of a duplicate id wins."""
    out: Dict[str, T] = {}
    for doc in docs:
        key = doc["id"]
        if key in out:
            logger.warning("Duplicate id %r in %s; keeping the first occurrence", key, source)
            continue
        try:
            out[key] = build(doc)
        except (KeyError, TypeError, ValueError) as e:
            raise CatalogError(f"Invalid entry {key!r} in {source}: {e}") from e
    return out


def load_missions(source: Source) -> Dict[str, MissionDefinition]:
    missions = _index_by_id(_load_documents(source, "mission"), MissionDefinition.from_dict, source)
    logger.info("Loaded %d mission(s) from %s", len(missions), source)
    return missions


def load_items(source: Source) -> Dict[str, ItemDefinition]:
    items = _index_by_id(_load_documents(source, "item"), ItemDefinition.from_dict, source)
    logger.info("Loaded %d item(s) from %s", len(items), source)
    return items


def load_flavor_events(source: Source) -> Dict[FlavorEventTrigger, List[FlavorEventDefinition]]:
    """Group flavor events by trigger, preserving file order within each trigger."""
    events = _index_by_id(_load_documents(source, "flavor_event"), FlavorEventDefinition.from_dict, source)
    grouped: Dict[FlavorEventTrigger, List[FlavorEventDefinition]] = {}
    for event in events.values():
        grouped.setdefault(event.trigger, []).append(event)
    logger.info("Loaded %d flavor event(s) from %s", len(events), source)
    return grouped


@dataclass
class ContentCatalog:
    """All static content handed to the engine, shop and session."""

    missions: Dict[str, MissionDefinition] = field(default_factory=dict)
    items: Dict[str, ItemDefinition] = field(default_factory=dict)
    flavor_events: Dict[FlavorEventTrigger, List[FlavorEventDefinition]] = field(default_factory=dict)

    @property
    def default_mission_id(self) -> Optional[str]:
        return next(iter(self.missions), None)


def load_content(content_dir: Optional[Path] = None) -> ContentCatalog:
    """Load all catalogs from ``content_dir``, or the bundled content when None."""
    if content_dir is None:
        root: Source = _bundled("content")
    else:
        root = Path(content_dir)
    return ContentCatalog(
        missions=load_missions(root / MISSIONS_FILE),
        items=load_items(root / ITEMS_FILE),
        flavor_events=load_flavor_events(root / FLAVOR_EVENTS_FILE),
    )

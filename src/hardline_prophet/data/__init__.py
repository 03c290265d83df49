"""Static game content: JSON catalogs and the schemas that validate them."""

from .loader import (
    ContentCatalog,
    load_content,
    load_flavor_events,
    load_items,
    load_missions,
)

__all__ = [
    "ContentCatalog",
    "load_content",
    "load_flavor_events",
    "load_items",
    "load_missions",
]

from __future__ import annotations

import json
from typing import Any, Dict


def canonical_dumps(obj: Dict[str, Any]) -> str:
    """Canonical JSON dump used for save checksums.

    - No whitespace (compact separators)
    - Keys sorted, so field order never depends on the caller
    - Non-ASCII kept verbatim so usernames hash as typed
    """
    return json.dumps(obj, separators=(",", ":"), sort_keys=True, ensure_ascii=False)


def pretty_dumps(obj: Dict[str, Any]) -> str:
    """Human-readable JSON used for the on-disk save payload."""
    return json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=False)

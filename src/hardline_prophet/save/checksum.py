from __future__ import annotations

import base64
import hmac
from hashlib import sha256

from ..models.record import PlayerRecord
from ..utils.jsonutil import canonical_dumps


def canonical_bytes(record: PlayerRecord) -> bytes:
    """Canonical encoding of a record with its checksum cleared."""
    payload = record.without_checksum().to_dict()
    return canonical_dumps(payload).encode("utf-8")


def compute_checksum(record: PlayerRecord) -> str:
    """SHA-256 over the canonical encoding, base64 encoded.

    The stored checksum never contributes to its own digest, and the result
    does not depend on how the payload was formatted on disk.
    """
    digest = sha256(canonical_bytes(record)).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_checksum(record: PlayerRecord) -> bool:
    if record.checksum is None:
        return False
    return hmac.compare_digest(compute_checksum(record).encode("ascii"), record.checksum.encode("utf-8"))


def with_checksum(record: PlayerRecord) -> PlayerRecord:
    return record.with_changes(checksum=compute_checksum(record))

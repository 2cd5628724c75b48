"""Canonical serialization and hashing helpers.

Event sizes and partition-key placement both derive from the same
canonical JSON encoding, so they are stable across processes.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact.

    - sorted keys
    - no whitespace separators (",", ":")
    - ensure_ascii=True
    - UTF-8 encoding
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def stable_bucket(key: str, buckets: int) -> int:
    """Map *key* onto ``[0, buckets)`` using its SHA-256 digest.

    The same key always lands in the same bucket, independent of
    ``PYTHONHASHSEED``.
    """
    if buckets < 1:
        raise ValueError("buckets must be >= 1")
    return int(sha256_hex(key.encode("utf-8")), 16) % buckets

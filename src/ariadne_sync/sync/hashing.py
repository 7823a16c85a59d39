"""Canonical content fingerprint of a local record.

The digest is only used to notice that a record changed since the last
sync, so it is truncated to 16 hex characters to keep the state file small.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from pydantic import BaseModel

HASH_LENGTH = 16


def record_payload(record: BaseModel | dict[str, Any]) -> dict[str, Any]:
    """Return the JSON-compatible dict a record is hashed and stored as.

    ``None`` values are dropped so a missing field and an explicit ``null``
    hash the same.
    """
    if isinstance(record, BaseModel):
        return record.model_dump(
            mode="json", by_alias=True, exclude_none=True
        )
    return {k: v for k, v in record.items() if v is not None}


def canonical_hash(record: BaseModel | dict[str, Any]) -> str:
    """Compute an order-independent SHA-256 fingerprint of *record*.

    Keys are sorted at every nesting level before serialisation, so two
    records with the same field values hash identically regardless of
    the order in which their fields were set.
    """
    payload = json.dumps(
        record_payload(record),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
    return digest[:HASH_LENGTH]

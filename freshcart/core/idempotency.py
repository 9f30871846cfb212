"""
Request hashing helpers.

Stable hashes key shipping quotes by (cart contents, zone) and give every
order submission an idempotency key the storefront API can deduplicate on.
"""
from __future__ import annotations

import hashlib
import json
from typing import Any


def normalize_idempotency_key(value: str | None) -> str | None:
    if not value:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def build_request_hash(payload: Any) -> str:
    """Generate a stable hash for a request payload."""
    serialized = json.dumps(
        payload,
        ensure_ascii=False,
        separators=(",", ":"),
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def build_idempotency_key(scope: str, payload: Any) -> str:
    """Key for one submission: the same payload in the same scope maps to the same key."""
    return f"{scope}:{build_request_hash(payload)[:32]}"

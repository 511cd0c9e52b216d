from __future__ import annotations

import hashlib
import json
from typing import Any, Dict


def canonical_dumps(obj: Any) -> str:
    # UUIDs, Decimals and datetimes go through str() so equal payloads hash equal
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def fingerprint(payload: Dict[str, Any]) -> str:
    """sha256 hex of the canonical JSON form of a request or audit payload."""
    return hashlib.sha256(canonical_dumps(payload).encode("utf-8")).hexdigest()

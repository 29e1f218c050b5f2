"""
Content fingerprints used for dirty tracking.

A fingerprint is a sha1 over a canonical JSON projection of a node's own
markup state. Equal fingerprints mean the node can be re-emitted verbatim.
"""

import dataclasses
import hashlib
import json
from enum import Enum
from typing import Any


def _default(value: Any):
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: getattr(value, f.name)
            for f in dataclasses.fields(value)
            if f.metadata.get("fingerprint", True)
        }
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (bytes, bytearray)):
        return hashlib.sha1(value).hexdigest()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return str(value)


def canonical_json(value: Any) -> str:
    return json.dumps(value, default=_default, sort_keys=True, ensure_ascii=False)


def compute_fingerprint(value: Any) -> str:
    """
    Compute a fingerprint for any JSON-projectable value.

    Args:
        value: Plain data, dataclasses, enums or bytes (nested freely)

    Returns:
        Hex sha1 digest
    """
    return hashlib.sha1(canonical_json(value).encode("utf-8")).hexdigest()

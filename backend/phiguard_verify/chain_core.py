"""
chain_core.py - Hash primitives for the audit ledger.

Single source of truth for hash computation. Used by BOTH the ledger writer
in the service AND the standalone verifier, so an exported ledger can be
checked without the service installed.

Hash rules:
- data_hash  = SHA-256(canonical JSON of the audit result)
- entry_hash = SHA-256(timestamp || data_hash || previous_hash)
- The first entry's previous_hash is GENESIS_HASH.

Any change here invalidates every ledger ever written.
"""

import hashlib
import json
from typing import Any, Dict

# Genesis hash constant (all zeros - first entry's previous_hash)
GENESIS_HASH = "0" * 64


def sha256_hex(data: bytes) -> str:
    """Return the hexadecimal SHA-256 digest of ``data``."""
    return hashlib.sha256(data).hexdigest()


def canonicalize(obj: Any) -> bytes:
    """
    Serialize ``obj`` to canonical JSON bytes.

    Keys sorted, no insignificant whitespace, UTF-8 without escaping.
    Floats are rejected: audit results carry integers and strings only, and
    float formatting is not stable enough to hash.

    Raises:
        ValueError: If the object contains floats, NaN or non-JSON types.
    """
    _reject_floats(obj)
    try:
        text = json.dumps(
            obj,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except TypeError as e:
        raise ValueError(f"Object is not canonicalizable: {e}") from e
    return text.encode("utf-8")


def _reject_floats(obj: Any) -> None:
    if isinstance(obj, float):
        raise ValueError("Floats are not permitted in canonical audit data")
    if isinstance(obj, dict):
        for value in obj.values():
            _reject_floats(value)
    elif isinstance(obj, (list, tuple)):
        for item in obj:
            _reject_floats(item)


def compute_data_hash(result: Dict[str, Any]) -> str:
    """
    Compute the data hash of a serialized audit result.

    Args:
        result: Audit result dict (status, risk_score, findings)

    Returns:
        SHA-256 hex digest of the canonical form
    """
    return sha256_hex(canonicalize(result))


def compute_entry_hash(timestamp: str, data_hash: str, previous_hash: str) -> str:
    """
    Compute the entry hash linking one ledger entry to its predecessor.

    The three fields are concatenated without separators. All three have
    fixed or self-delimiting formats (RFC 3339 timestamp, 64-char hex), so
    concatenation is unambiguous.
    """
    combined = f"{timestamp}{data_hash}{previous_hash}"
    return sha256_hex(combined.encode("utf-8"))

"""
Offline verifier for the PHI Guard audit ledger.

Shared by the service (hash computation at append time) and by the
standalone ``phiguard-verify`` CLI (verification of exported ledgers).
"""

from .chain_core import (
    GENESIS_HASH,
    canonicalize,
    compute_data_hash,
    compute_entry_hash,
    sha256_hex,
)
from .verifier import verify_chain, verify_file

__all__ = [
    "GENESIS_HASH",
    "canonicalize",
    "compute_data_hash",
    "compute_entry_hash",
    "sha256_hex",
    "verify_chain",
    "verify_file",
]

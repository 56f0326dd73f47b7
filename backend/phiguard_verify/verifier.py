"""
phiguard_verify/verifier.py - Ledger Verifier Core

Recomputes the audit ledger hash chain and reports tampering.

Guarantees:
- Recompute every entry_hash from (timestamp, data_hash, previous_hash)
- Check linkage: previous_hash(i) == entry_hash(i-1), genesis for i == 0
- Optionally cross-check each entry against its persisted audit record
- Never repair: every mismatch is reported, nothing is rewritten

Properties:
- Runs offline
- No service or database dependency
- Deterministic
"""
import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .chain_core import GENESIS_HASH, compute_data_hash, compute_entry_hash
from .errors import ChainFinding, ChainVerificationReport, FindingSeverity, FindingType

REQUIRED_FIELDS = ("sequence", "timestamp", "data_hash", "previous_hash", "entry_hash")


def verify_chain(
    entries: List[Dict[str, Any]],
    records: Optional[Mapping[str, Optional[str]]] = None,
    genesis_hash: str = GENESIS_HASH,
) -> ChainVerificationReport:
    """
    Verify a ledger's integrity.

    Args:
        entries: Ledger entries in append order
        records: Optional mapping entry_hash -> canonical result JSON of
            the persisted audit record referencing that entry. When given,
            entries without a record are reported as orphaned and entries
            whose record no longer hashes to data_hash as data mismatches.
        genesis_hash: Expected previous_hash of the first entry

    Returns:
        ChainVerificationReport with PASS/DEGRADED/FAIL status
    """
    findings: List[ChainFinding] = []

    if not entries:
        return ChainVerificationReport(
            entry_count=0, first_entry_hash=None, final_entry_hash=None
        )

    prev_expected_hash = genesis_hash
    prev_sequence: Optional[int] = None

    for i, entry in enumerate(entries):
        problem = _malformed(entry)
        if problem is not None:
            seq = entry.get("sequence") if isinstance(entry, dict) else None
            findings.append(ChainFinding(
                finding_type=FindingType.MALFORMED_ENTRY,
                severity=FindingSeverity.FATAL,
                message=f"Entry {i} {problem}",
                sequence=seq if _is_int(seq) else None,
            ))
            # Linkage cannot be checked past a malformed entry
            if isinstance(entry, dict) and isinstance(entry.get("entry_hash"), str):
                prev_expected_hash = entry["entry_hash"]
            continue

        seq = entry["sequence"]

        # 1. Sequence must be strictly increasing
        if prev_sequence is not None and seq <= prev_sequence:
            findings.append(ChainFinding(
                finding_type=FindingType.SEQUENCE_VIOLATION,
                severity=FindingSeverity.FATAL,
                message=f"Non-monotonic sequence: {prev_sequence} -> {seq}",
                sequence=seq,
            ))
        prev_sequence = seq

        # 2. Linkage
        recorded_prev = entry["previous_hash"]
        if recorded_prev != prev_expected_hash:
            if i == 0:
                findings.append(ChainFinding(
                    finding_type=FindingType.INVALID_GENESIS,
                    severity=FindingSeverity.FATAL,
                    message="First entry does not reference the genesis hash",
                    sequence=seq,
                    details={"expected": prev_expected_hash, "recorded": recorded_prev},
                ))
            else:
                findings.append(ChainFinding(
                    finding_type=FindingType.CHAIN_BREAK,
                    severity=FindingSeverity.FATAL,
                    message=f"Chain break at sequence {seq}: previous_hash mismatch",
                    sequence=seq,
                    details={"expected": prev_expected_hash, "recorded": recorded_prev},
                ))

        # 3. Recompute entry hash
        recomputed = compute_entry_hash(
            entry["timestamp"], entry["data_hash"], entry["previous_hash"]
        )
        if recomputed != entry["entry_hash"]:
            findings.append(ChainFinding(
                finding_type=FindingType.HASH_MISMATCH,
                severity=FindingSeverity.FATAL,
                message=f"Entry hash mismatch at sequence {seq}",
                sequence=seq,
                details={"recomputed": recomputed, "recorded": entry["entry_hash"]},
            ))

        # 4. Cross-check persisted record
        if records is not None:
            finding = _check_record(entry, records)
            if finding is not None:
                findings.append(finding)

        prev_expected_hash = entry["entry_hash"]

    return ChainVerificationReport(
        entry_count=len(entries),
        first_entry_hash=_entry_hash_of(entries[0]),
        final_entry_hash=_entry_hash_of(entries[-1]),
        findings=findings,
    )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _entry_hash_of(entry: Any) -> Optional[str]:
    value = entry.get("entry_hash") if isinstance(entry, dict) else None
    return value if isinstance(value, str) else None


def _malformed(entry: Any) -> Optional[str]:
    """Describe why ``entry`` cannot be verified, or None if it is well-formed."""
    if not isinstance(entry, dict):
        return f"is not an object ({type(entry).__name__})"
    missing = [f for f in REQUIRED_FIELDS if entry.get(f) is None]
    if missing:
        return f"missing fields: {', '.join(missing)}"
    if not _is_int(entry["sequence"]):
        return "has a non-integer sequence"
    wrong = [f for f in REQUIRED_FIELDS[1:] if not isinstance(entry[f], str)]
    if wrong:
        return f"has non-string fields: {', '.join(wrong)}"
    return None


def _check_record(
    entry: Dict[str, Any], records: Mapping[str, Optional[str]]
) -> Optional[ChainFinding]:
    entry_hash = entry["entry_hash"]
    seq = entry.get("sequence")
    canonical = records.get(entry_hash)

    if canonical is None:
        # Crash between ledger append and persistence leaves this behind
        return ChainFinding(
            finding_type=FindingType.ORPHANED_ENTRY,
            severity=FindingSeverity.WARNING,
            message=f"No persisted audit record for entry at sequence {seq}",
            sequence=seq,
            details={"entry_hash": entry_hash},
        )

    try:
        data_hash = compute_data_hash(json.loads(canonical))
    except (TypeError, ValueError):
        data_hash = None

    if data_hash != entry["data_hash"]:
        return ChainFinding(
            finding_type=FindingType.DATA_MISMATCH,
            severity=FindingSeverity.FATAL,
            message=f"Audit record for sequence {seq} does not match ledger data_hash",
            sequence=seq,
            details={"entry_hash": entry_hash, "recomputed": data_hash},
        )
    return None


def verify_file(path: str) -> ChainVerificationReport:
    """
    Verify an exported ledger file.

    Accepts either a bare list of entries or an export object
    ``{"entries": [...], "records": {entry_hash: canonical_result}}``.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, list):
        return verify_chain(data)
    if not isinstance(data, dict) or not isinstance(data.get("entries"), list):
        raise ValueError("Ledger export must be a list or an object with 'entries'")

    records = data.get("records")
    if records is not None:
        if not isinstance(records, dict) or not all(
            isinstance(v, str) for v in records.values()
        ):
            raise ValueError("Ledger export 'records' must map entry_hash to canonical JSON")
    return verify_chain(data["entries"], records=records)

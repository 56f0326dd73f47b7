"""
phiguard_verify/test_verifier.py - Ledger Verifier Test Vectors

Tests:
- Valid chain passes
- Empty chain passes
- Tampered data_hash / entry_hash detected
- Chain break and bad genesis detected
- Orphaned entry causes DEGRADED
- Record that no longer matches its entry causes FAIL
"""
import json
from typing import Any, Dict, List, Tuple

import pytest

from .chain_core import GENESIS_HASH, canonicalize, compute_data_hash, compute_entry_hash
from .errors import FindingType, VerificationStatus
from .verifier import verify_chain, verify_file


def make_result(i: int) -> Dict[str, Any]:
    return {
        "status": "VIOLATION" if i % 2 else "CLEAN",
        "risk_score": 40 * (i % 2),
        "findings": [
            {"category": "PHI_LOGGING", "severity": "HIGH", "message": f"m{i}", "line": i + 1}
        ] if i % 2 else [],
    }


def make_ledger(count: int = 3) -> Tuple[List[Dict[str, Any]], Dict[str, str]]:
    """Build a valid ledger plus its entry_hash -> canonical record mapping."""
    entries = []
    records = {}
    prev_hash = GENESIS_HASH

    for i in range(count):
        result = make_result(i)
        data_hash = compute_data_hash(result)
        timestamp = f"2026-01-01T12:{i:02d}:00.000000Z"
        entry_hash = compute_entry_hash(timestamp, data_hash, prev_hash)
        entries.append({
            "sequence": i + 1,
            "timestamp": timestamp,
            "data_hash": data_hash,
            "previous_hash": prev_hash,
            "entry_hash": entry_hash,
        })
        records[entry_hash] = canonicalize(result).decode("utf-8")
        prev_hash = entry_hash

    return entries, records


class TestValidLedger:
    def test_valid_chain_passes(self):
        entries, records = make_ledger(3)
        report = verify_chain(entries, records=records)

        assert report.status == VerificationStatus.PASS
        assert report.exit_code == 0
        assert report.entry_count == 3
        assert report.first_entry_hash == entries[0]["entry_hash"]
        assert report.final_entry_hash == entries[-1]["entry_hash"]

    def test_empty_chain_passes(self):
        report = verify_chain([])
        assert report.status == VerificationStatus.PASS
        assert report.entry_count == 0
        assert report.final_entry_hash is None

    def test_records_optional(self):
        entries, _ = make_ledger(2)
        assert verify_chain(entries).status == VerificationStatus.PASS


class TestTamperDetection:
    def test_corrupted_data_hash_fails(self):
        entries, _ = make_ledger(2)
        entries[0]["data_hash"] = "f" * 64

        report = verify_chain(entries)

        assert report.status == VerificationStatus.FAIL
        types = [f.finding_type for f in report.findings]
        assert FindingType.HASH_MISMATCH in types

    def test_rewritten_entry_hash_breaks_link(self):
        entries, _ = make_ledger(3)
        entries[1]["entry_hash"] = "a" * 64

        report = verify_chain(entries)

        types = [f.finding_type for f in report.findings]
        assert FindingType.HASH_MISMATCH in types
        assert FindingType.CHAIN_BREAK in types
        assert report.exit_code == 2

    def test_invalid_genesis(self):
        entries, _ = make_ledger(1)
        entries[0]["previous_hash"] = "1" * 64

        report = verify_chain(entries)

        assert report.findings[0].finding_type == FindingType.INVALID_GENESIS

    def test_sequence_must_increase(self):
        entries, _ = make_ledger(2)
        entries[1]["sequence"] = entries[0]["sequence"]

        report = verify_chain(entries)

        assert FindingType.SEQUENCE_VIOLATION in [f.finding_type for f in report.findings]

    def test_missing_field_is_malformed(self):
        entries, _ = make_ledger(1)
        del entries[0]["data_hash"]

        report = verify_chain(entries)

        assert report.findings[0].finding_type == FindingType.MALFORMED_ENTRY
        assert report.status == VerificationStatus.FAIL


class TestRecordCrossCheck:
    def test_orphaned_entry_is_degraded(self):
        entries, records = make_ledger(2)
        del records[entries[1]["entry_hash"]]

        report = verify_chain(entries, records=records)

        assert report.status == VerificationStatus.DEGRADED
        assert report.exit_code == 1
        assert report.findings[0].finding_type == FindingType.ORPHANED_ENTRY
        assert report.findings[0].sequence == entries[1]["sequence"]

    def test_modified_record_is_data_mismatch(self):
        entries, records = make_ledger(2)
        h = entries[0]["entry_hash"]
        tampered = json.loads(records[h])
        tampered["status"] = "VIOLATION"
        records[h] = canonicalize(tampered).decode("utf-8")

        report = verify_chain(entries, records=records)

        assert report.status == VerificationStatus.FAIL
        assert report.findings[0].finding_type == FindingType.DATA_MISMATCH

    def test_unparseable_record_is_data_mismatch(self):
        entries, records = make_ledger(1)
        records[entries[0]["entry_hash"]] = "{not json"

        report = verify_chain(entries, records=records)

        assert report.findings[0].finding_type == FindingType.DATA_MISMATCH


class TestVerifyFile:
    def test_export_object(self, tmp_path):
        entries, records = make_ledger(2)
        path = tmp_path / "ledger.json"
        path.write_text(json.dumps({"entries": entries, "records": records}))

        assert verify_file(str(path)).status == VerificationStatus.PASS

    def test_bare_list(self, tmp_path):
        entries, _ = make_ledger(2)
        path = tmp_path / "ledger.json"
        path.write_text(json.dumps(entries))

        assert verify_file(str(path)).entry_count == 2

    def test_rejects_other_shapes(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text(json.dumps({"rows": []}))

        with pytest.raises(ValueError):
            verify_file(str(path))


class TestChainCore:
    def test_canonical_form_is_sorted_and_compact(self):
        assert canonicalize({"b": 1, "a": [1, "x"]}) == b'{"a":[1,"x"],"b":1}'

    def test_floats_rejected(self):
        with pytest.raises(ValueError):
            canonicalize({"risk_score": 1.5})

    def test_entry_hash_is_plain_concatenation(self):
        import hashlib

        expected = hashlib.sha256(("T" + "d" * 64 + GENESIS_HASH).encode()).hexdigest()
        assert compute_entry_hash("T", "d" * 64, GENESIS_HASH) == expected

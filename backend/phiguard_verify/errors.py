"""
phiguard_verify/errors.py - Ledger Verification Taxonomy

Machine-readable verification outcomes.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class VerificationStatus(str, Enum):
    """Final verification outcome."""
    PASS = "PASS"
    DEGRADED = "DEGRADED"
    FAIL = "FAIL"


class FindingType(str, Enum):
    """Classification of individual chain findings."""
    # Fatal (cause FAIL)
    HASH_MISMATCH = "HASH_MISMATCH"
    CHAIN_BREAK = "CHAIN_BREAK"
    INVALID_GENESIS = "INVALID_GENESIS"
    SEQUENCE_VIOLATION = "SEQUENCE_VIOLATION"
    MALFORMED_ENTRY = "MALFORMED_ENTRY"
    DATA_MISMATCH = "DATA_MISMATCH"

    # Degrading (cause DEGRADED)
    ORPHANED_ENTRY = "ORPHANED_ENTRY"


class FindingSeverity(str, Enum):
    FATAL = "FATAL"  # Causes FAIL
    WARNING = "WARNING"  # Causes DEGRADED


@dataclass
class ChainFinding:
    """Individual verification finding, anchored to a ledger entry."""
    finding_type: FindingType
    severity: FindingSeverity
    message: str
    sequence: Optional[int] = None
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.finding_type.value,
            "severity": self.severity.value,
            "message": self.message,
            "sequence": self.sequence,
            "details": self.details or {},
        }


@dataclass
class ChainVerificationReport:
    """Complete ledger verification report."""
    entry_count: int
    first_entry_hash: Optional[str]
    final_entry_hash: Optional[str]
    findings: List[ChainFinding] = field(default_factory=list)

    @property
    def status(self) -> VerificationStatus:
        """FAIL on any fatal finding, DEGRADED on warnings only, else PASS."""
        if any(f.severity == FindingSeverity.FATAL for f in self.findings):
            return VerificationStatus.FAIL
        if self.findings:
            return VerificationStatus.DEGRADED
        return VerificationStatus.PASS

    @property
    def exit_code(self) -> int:
        """0 = PASS, 1 = DEGRADED, 2 = FAIL."""
        if self.status == VerificationStatus.PASS:
            return 0
        if self.status == VerificationStatus.DEGRADED:
            return 1
        return 2

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "entry_count": self.entry_count,
            "first_entry_hash": self.first_entry_hash,
            "final_entry_hash": self.final_entry_hash,
            "findings": [f.to_dict() for f in self.findings],
            "exit_code": self.exit_code,
        }

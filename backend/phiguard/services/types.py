"""
types.py - Immutable domain objects shared across the audit pipeline.

AuditContext, Finding and AuditResult are frozen dataclasses: built once per
run, never modified. They are data transfer objects, NOT ORM models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class FindingCategory(str, Enum):
    """
    Closed set of finding categories.

    OTHER is the single extension point: collaborator-reported categories
    that match nothing here land in OTHER with the original name in
    Finding.label.
    """

    PHI_LOGGING = "PHI_LOGGING"
    UNSAFE_BLOCK = "UNSAFE_BLOCK"
    HARDCODED_SECRET = "HARDCODED_SECRET"
    SENSITIVE_FUNCTION = "SENSITIVE_FUNCTION"
    STATIC_ANALYSIS = "STATIC_ANALYSIS"
    OTHER = "OTHER"


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class Verdict(str, Enum):
    CLEAN = "CLEAN"
    VIOLATION = "VIOLATION"


class FindingSource(str, Enum):
    SCANNER = "scanner"
    STATIC_ANALYSIS = "static_analysis"
    REVIEWER = "reviewer"


@dataclass(frozen=True)
class AuditContext:
    """Everything one audit run knows about the pull request."""

    repo_owner: str
    repo_name: str
    pr_number: int
    title: str
    description: str
    diff: str
    base_branch: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.repo_owner}/{self.repo_name}"


@dataclass(frozen=True)
class Finding:
    category: FindingCategory
    severity: Severity
    message: str
    line: int | None = None
    source: FindingSource = FindingSource.SCANNER
    label: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Canonical form. Source and label are presentation-only and not hashed."""
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "line": self.line,
        }


@dataclass(frozen=True)
class AuditResult:
    status: Verdict
    risk_score: int
    findings: tuple[Finding, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "risk_score": self.risk_score,
            "findings": [f.to_dict() for f in self.findings],
        }

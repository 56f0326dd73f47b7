"""
aggregator.py - Merge findings into a score and a verdict.

Score = sum of category weights, clamped to [0, 100]. Weights are
non-negative, so adding a finding never lowers the score.

Verdict = VIOLATION if score > threshold or any finding is CRITICAL.
A score exactly at the threshold is CLEAN.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from phiguard.services.types import (
    AuditResult,
    Finding,
    FindingCategory,
    Severity,
    Verdict,
)

DEFAULT_THRESHOLD = 30
MAX_SCORE = 100

CATEGORY_WEIGHTS: dict[FindingCategory, int] = {
    FindingCategory.PHI_LOGGING: 40,
    FindingCategory.SENSITIVE_FUNCTION: 35,
    FindingCategory.STATIC_ANALYSIS: 30,
    FindingCategory.UNSAFE_BLOCK: 20,
    FindingCategory.HARDCODED_SECRET: 10,
    FindingCategory.OTHER: 10,
}


def score(findings: Iterable[Finding]) -> int:
    total = sum(CATEGORY_WEIGHTS[f.category] for f in findings)
    return max(0, min(MAX_SCORE, total))


def aggregate(
    *sources: Sequence[Finding],
    threshold: int = DEFAULT_THRESHOLD,
) -> AuditResult:
    """
    Build the AuditResult for one run.

    Args:
        *sources: Finding lists in merge order (scanner, static analysis, reviewer).
        threshold: Scores strictly above this are a VIOLATION.
    """
    findings = tuple(f for source in sources for f in source)
    risk_score = score(findings)
    critical = any(f.severity is Severity.CRITICAL for f in findings)
    status = Verdict.VIOLATION if risk_score > threshold or critical else Verdict.CLEAN
    return AuditResult(status=status, risk_score=risk_score, findings=findings)

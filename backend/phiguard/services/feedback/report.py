"""Markdown report posted back to the pull request."""

from __future__ import annotations

from typing import Optional

from phiguard.services.types import AuditResult, Finding, Verdict

VERDICT_BADGES = {
    Verdict.CLEAN: "✅ CLEAN",
    Verdict.VIOLATION: "🚨 VIOLATION",
}


def _cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def _finding_row(finding: Finding) -> str:
    category = finding.category.value
    if finding.label:
        category = f"{category} ({_cell(finding.label)})"
    line = str(finding.line) if finding.line is not None else "-"
    return (
        f"| {finding.severity.value} | {category} | {line} "
        f"| {finding.source.value} | {_cell(finding.message)} |"
    )


def render_report(
    result: AuditResult,
    entry_hash: str,
    rules_hash: str,
    reviewer_summary: Optional[str] = None,
) -> str:
    lines = [
        "## PHI Guard Audit",
        "",
        f"**Verdict:** {VERDICT_BADGES[result.status]}  ",
        f"**Risk score:** {result.risk_score}/100",
        "",
    ]

    if result.findings:
        lines += [
            "| Severity | Category | Line | Source | Message |",
            "|---|---|---|---|---|",
        ]
        lines += [_finding_row(f) for f in result.findings]
    else:
        lines.append("No findings.")
    lines.append("")

    if reviewer_summary:
        lines += ["### Reviewer summary", "", reviewer_summary.strip(), ""]

    lines += [
        "---",
        f"Ledger entry: `{entry_hash}`  ",
        f"Scanner rules: `{rules_hash[:12]}`",
    ]
    return "\n".join(lines) + "\n"

"""
engine.py - Deterministic line scanner.

CONSTRAINTS:
1. Scanner.scan() is a PURE FUNCTION: no I/O, no clock, no randomness
2. Same diff text + same Ruleset -> identical finding list
3. At most one finding per rule per line; order is (line, rule order)
"""

from __future__ import annotations

from typing import Iterator

from phiguard.services.types import Finding, FindingCategory, Severity

from .rules import DEFAULT_RULESET, Ruleset

# Diff metadata lines carry no source code
HEADER_PREFIXES = ("diff --git", "+++", "---", "@@", "index ")


def diff_lines(diff: str) -> Iterator[tuple[int, str]]:
    """
    Yield (line_number, text) for each physical diff line.

    Only LF ends a line. Form feeds and Unicode line separators are part of
    the source text; a trailing CR is dropped.
    """
    for number, line in enumerate(diff.split("\n"), start=1):
        yield number, line[:-1] if line.endswith("\r") else line


def _is_scannable(line: str) -> bool:
    if line.startswith(HEADER_PREFIXES):
        return False
    return not line.startswith("-")


class Scanner:
    """Applies one Ruleset. Built once at startup and shared by every run."""

    def __init__(self, ruleset: Ruleset = DEFAULT_RULESET) -> None:
        self.ruleset = ruleset
        self._rules = ruleset.compile()

    @property
    def rules_hash(self) -> str:
        return self.ruleset.rules_hash

    def scan(self, diff: str) -> list[Finding]:
        findings: list[Finding] = []
        for number, line in diff_lines(diff):
            if not _is_scannable(line):
                continue

            if self._rules.phi.search(line) and self._rules.logging_call.search(line):
                findings.append(
                    Finding(
                        category=FindingCategory.PHI_LOGGING,
                        severity=Severity.HIGH,
                        message=f"PHI identifier logged at line {number}",
                        line=number,
                    )
                )

            if self._rules.unsafe.search(line):
                findings.append(
                    Finding(
                        category=FindingCategory.UNSAFE_BLOCK,
                        severity=Severity.MEDIUM,
                        message=f"Unsafe block detected at line {number}",
                        line=number,
                    )
                )

            if self._rules.secret.search(line):
                findings.append(
                    Finding(
                        category=FindingCategory.HARDCODED_SECRET,
                        severity=Severity.CRITICAL,
                        message=f"Hardcoded secret literal at line {number}",
                        line=number,
                    )
                )
        return findings


def scan(diff: str, ruleset: Ruleset = DEFAULT_RULESET) -> list[Finding]:
    """Convenience wrapper for one-off scans."""
    return Scanner(ruleset).scan(diff)

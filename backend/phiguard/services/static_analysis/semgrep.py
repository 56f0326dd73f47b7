"""
semgrep.py - Optional Semgrep pass over the lines a pull request adds.

The diff is rebuilt into a scratch tree (added lines only, one file per
path), Semgrep runs over it, and each result is mapped back to the diff
line it came from. Failures degrade to no findings.
"""

from __future__ import annotations

import asyncio
import json
import logging
import tempfile
from pathlib import Path, PurePosixPath
from typing import Any, Optional

from phiguard.config import Settings
from phiguard.errors import StaticAnalysisError
from phiguard.services.scanner.engine import diff_lines
from phiguard.services.types import (
    AuditContext,
    Finding,
    FindingCategory,
    FindingSource,
    Severity,
)

logger = logging.getLogger(__name__)

SEVERITY_MAP = {
    "ERROR": Severity.HIGH,
    "WARNING": Severity.MEDIUM,
    "INFO": Severity.LOW,
}


def _target_path(header: str) -> Optional[str]:
    """Path from a '+++ b/src/x.rs' header, or None for deletions and unsafe paths."""
    raw = header[4:].strip().split("\t", 1)[0]
    if raw == "/dev/null":
        return None
    if raw.startswith("b/"):
        raw = raw[2:]
    path = PurePosixPath(raw)
    if path.is_absolute() or ".." in path.parts or not path.parts:
        return None
    return str(path)


def reconstruct_added_lines(diff: str) -> dict[str, list[tuple[int, str]]]:
    """
    Collect added lines per file.

    Returns:
        {path: [(diff_line_number, text), ...]} in diff order.
    """
    files: dict[str, list[tuple[int, str]]] = {}
    current: Optional[str] = None
    for number, line in diff_lines(diff):
        if line.startswith("+++"):
            current = _target_path(line)
            if current is not None:
                files.setdefault(current, [])
            continue
        if line.startswith("diff --git"):
            current = None
            continue
        if current is not None and line.startswith("+"):
            files[current].append((number, line[1:]))
    return {path: lines for path, lines in files.items() if lines}


class SemgrepRunner:
    """Runs the Semgrep CLI. Disabled when no executable is configured."""

    def __init__(
        self,
        semgrep_path: Optional[str],
        config: str = "semgrep/phi_rules.yml",
        timeout_seconds: float = 60.0,
    ) -> None:
        self._path = semgrep_path
        self._config = config
        self._timeout = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "SemgrepRunner":
        return cls(
            settings.SEMGREP_PATH,
            settings.SEMGREP_CONFIG,
            settings.SEMGREP_TIMEOUT_SECONDS,
        )

    @property
    def enabled(self) -> bool:
        return bool(self._path)

    async def _execute(self, target: Path) -> dict[str, Any]:
        proc = await asyncio.create_subprocess_exec(
            self._path,
            "--config",
            self._config,
            "--json",
            "--quiet",
            str(target),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise StaticAnalysisError(f"Semgrep timed out after {self._timeout}s") from e
        finally:
            # Also reached on cancellation; the child must not outlive the run
            if proc.returncode is None:
                proc.kill()
                await proc.wait()

        # 0 = clean, 1 = findings (with --error); anything else is a tool failure
        if proc.returncode not in (0, 1):
            raise StaticAnalysisError(
                f"Semgrep exited with {proc.returncode}",
                details={"stderr": stderr.decode("utf-8", "replace")[-500:]},
            )
        try:
            output = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise StaticAnalysisError("Semgrep produced invalid JSON") from e
        if not isinstance(output, dict):
            raise StaticAnalysisError("Semgrep output is not an object")
        return output

    def _map_results(
        self,
        output: dict[str, Any],
        target: Path,
        added: dict[str, list[tuple[int, str]]],
    ) -> list[Finding]:
        findings = []
        for result in output.get("results", []):
            try:
                rel = Path(result["path"]).resolve().relative_to(target.resolve()).as_posix()
            except (KeyError, ValueError):
                continue
            lines = added.get(rel)
            file_line = (result.get("start") or {}).get("line")
            if not lines or not isinstance(file_line, int) or not 1 <= file_line <= len(lines):
                continue
            extra = result.get("extra") or {}
            findings.append(
                Finding(
                    category=FindingCategory.STATIC_ANALYSIS,
                    severity=SEVERITY_MAP.get(str(extra.get("severity", "")).upper(), Severity.MEDIUM),
                    message=f"{result.get('check_id', 'semgrep')}: {extra.get('message', '').strip()}",
                    line=lines[file_line - 1][0],
                    source=FindingSource.STATIC_ANALYSIS,
                )
            )
        findings.sort(key=lambda f: f.line)
        return findings

    async def _analyze(self, context: AuditContext) -> list[Finding]:
        added = reconstruct_added_lines(context.diff)
        if not added:
            return []
        with tempfile.TemporaryDirectory(prefix="phiguard-") as tmp:
            target = Path(tmp)
            for rel, lines in added.items():
                dest = target / rel
                dest.parent.mkdir(parents=True, exist_ok=True)
                dest.write_text("\n".join(text for _, text in lines) + "\n", encoding="utf-8")
            try:
                output = await self._execute(target)
            except OSError as e:
                raise StaticAnalysisError(f"Could not start semgrep: {e}") from e
            return self._map_results(output, target, added)

    async def run(self, context: AuditContext) -> list[Finding]:
        if not self.enabled:
            return []
        try:
            findings = await self._analyze(context)
        except StaticAnalysisError as e:
            logger.warning(
                "Static analysis failed for %s#%s: %s",
                context.full_name,
                context.pr_number,
                e.message,
            )
            return []
        logger.info(
            "Static analysis: %d finding(s) for %s#%s",
            len(findings),
            context.full_name,
            context.pr_number,
        )
        return findings

"""
phiguard_verify/cli.py - offline ledger verification.

    phiguard-verify verify ledger_export.json [--output report.json] [--quiet]

The input is the body of GET /api/v1/ledger/export (or a bare entry list).
Exit status is the report's: 0 PASS, 1 DEGRADED, 2 FAIL. Unreadable input
also exits 2.
"""
import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .errors import ChainVerificationReport
from .verifier import verify_file

EXIT_UNREADABLE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="phiguard-verify",
        description="Recompute and check a PHI Guard audit ledger export.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    verify = commands.add_parser("verify", help="verify an exported ledger")
    verify.add_argument("ledger_file", type=Path)
    verify.add_argument("-o", "--output", type=Path, help="write the JSON report here")
    verify.add_argument("-q", "--quiet", action="store_true", help="print nothing")
    return parser


def render_text(report: ChainVerificationReport) -> str:
    lines = [
        f"Ledger: {report.status.value}",
        f"  entries: {report.entry_count}",
        f"  first:   {report.first_entry_hash or '-'}",
        f"  head:    {report.final_entry_hash or '-'}",
    ]
    for finding in report.findings:
        where = f"seq {finding.sequence}" if finding.sequence is not None else "-"
        lines.append(
            f"  {finding.severity.value:<7} {finding.finding_type.value} ({where}): {finding.message}"
        )
    return "\n".join(lines)


def run_verify(ledger_file: Path, output: Optional[Path], quiet: bool) -> int:
    if not ledger_file.is_file():
        print(f"phiguard-verify: no such file: {ledger_file}", file=sys.stderr)
        return EXIT_UNREADABLE

    try:
        report = verify_file(str(ledger_file))
    except ValueError as e:
        print(f"phiguard-verify: cannot read ledger: {e}", file=sys.stderr)
        return EXIT_UNREADABLE
    except Exception as e:
        print(f"phiguard-verify: verification failed: {e}", file=sys.stderr)
        return EXIT_UNREADABLE

    if output is not None:
        output.write_text(json.dumps(report.to_dict(), indent=2), encoding="utf-8")
    if not quiet:
        print(render_text(report))
    return report.exit_code


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return run_verify(args.ledger_file, args.output, args.quiet)


if __name__ == "__main__":
    sys.exit(main())

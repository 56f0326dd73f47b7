"""
pipeline.py - One audit run, end to end.

    fetch -> {scan, static analysis, review} -> aggregate
          -> ledger append -> persist -> publish

Every step after the fetch works on immutable per-run inputs. The ledger is
the only shared section. Feedback is published only after the ledger entry
and the audit record are both committed.

Failure policy per run:
- FetchError, LedgerWriteConflict, PersistenceError, timeout: abort the run
- reviewer / static analysis failures: handled inside their adapters
- PublishError: logged, nothing is unwound
A failed run never affects other runs.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional

from phiguard.errors import AuditError, PublishError
from phiguard.services.feedback import FeedbackPublisher, render_report
from phiguard.services.github import GitHubAppAuth, fetch_context
from phiguard.services.github.fetcher import authorize
from phiguard.services.ledger import AuditLedger, LedgerEntry
from phiguard.services.persistence import AuditRecordWriter
from phiguard.services.reviewer import ReviewerAdapter
from phiguard.services.risk import DEFAULT_THRESHOLD, aggregate
from phiguard.services.scanner import Scanner
from phiguard.services.static_analysis import SemgrepRunner
from phiguard.services.types import AuditResult
from phiguard.services.webhook.decoder import PullRequestEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunOutcome:
    result: AuditResult
    entry: LedgerEntry
    record_id: int
    published: bool


class AuditPipeline:
    def __init__(
        self,
        auth: GitHubAppAuth,
        scanner: Scanner,
        static_analysis: SemgrepRunner,
        reviewer: ReviewerAdapter,
        ledger: AuditLedger,
        writer: AuditRecordWriter,
        publisher: FeedbackPublisher,
        threshold: int = DEFAULT_THRESHOLD,
        run_timeout_seconds: float = 120.0,
    ) -> None:
        self.auth = auth
        self.scanner = scanner
        self.static_analysis = static_analysis
        self.reviewer = reviewer
        self.ledger = ledger
        self.writer = writer
        self.publisher = publisher
        self.threshold = threshold
        self.run_timeout = run_timeout_seconds

    async def _run(self, event: PullRequestEvent) -> RunOutcome:
        client = await authorize(self.auth, event.installation_id)
        context = await fetch_context(client, event.repo_owner, event.repo_name, event.pr_number)

        scanner_findings = self.scanner.scan(context.diff)
        static_findings, review = await asyncio.gather(
            self.static_analysis.run(context),
            self.reviewer.review(context),
        )
        result = aggregate(
            scanner_findings,
            static_findings,
            review.findings,
            threshold=self.threshold,
        )
        logger.info(
            "Audit %s#%s: %s score=%d findings=%d (scanner=%d static=%d reviewer=%d)",
            event.full_name,
            event.pr_number,
            result.status.value,
            result.risk_score,
            len(result.findings),
            len(scanner_findings),
            len(static_findings),
            len(review.findings),
        )

        entry = await self.ledger.append(result)
        report = render_report(result, entry.entry_hash, self.scanner.rules_hash, review.summary)
        record_id = await self.writer.append(context, result, entry, report)

        published = True
        try:
            await self.publisher.publish(client, context, result.status, report)
        except PublishError as e:
            published = False
            logger.error(
                "Feedback not delivered for %s#%s (record %s kept): %s",
                event.full_name,
                event.pr_number,
                record_id,
                e.message,
            )

        return RunOutcome(result=result, entry=entry, record_id=record_id, published=published)

    async def run(self, event: PullRequestEvent) -> Optional[RunOutcome]:
        """
        Audit one pull request event.

        Returns the outcome, or None when the run was aborted. Aborts are
        logged here; they never propagate to the caller.
        """
        start = time.monotonic()
        try:
            outcome = await asyncio.wait_for(self._run(event), timeout=self.run_timeout)
        except asyncio.TimeoutError:
            logger.error(
                "Audit %s#%s aborted: exceeded %.0fs run budget",
                event.full_name,
                event.pr_number,
                self.run_timeout,
            )
            return None
        except AuditError as e:
            logger.error(
                "Audit %s#%s aborted [%s]: %s",
                event.full_name,
                event.pr_number,
                e.code.value,
                e.message,
            )
            return None

        logger.info(
            "Audit %s#%s complete in %.2fs (delivery=%s)",
            event.full_name,
            event.pr_number,
            time.monotonic() - start,
            event.delivery_id,
        )
        return outcome

"""
End-to-end audit runs against the fake GitHub and an in-memory store.
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from conftest import CLEAN_DIFF, PHI_DIFF, SECRET_DIFF, make_event
from phiguard.errors import LedgerWriteConflict, PersistenceError
from phiguard.models import AuditChainEntry, AuditRecord
from phiguard.services.ledger import verify_ledger
from phiguard.services.reviewer import ReviewerAdapter
from phiguard.services.types import FindingCategory, Verdict
from phiguard_verify import GENESIS_HASH
from phiguard_verify.errors import VerificationStatus


def slow_reviewer(delay=10.0, timeout=0.1):
    async def create(**kwargs):
        await asyncio.sleep(delay)

    client = MagicMock()
    client.chat.completions.create = create
    return ReviewerAdapter(client, timeout_seconds=timeout)


class TestAuditRun:
    async def test_phi_diff_is_violation(self, pipeline, fake_github, db):
        fake_github.add_pull("acme", "ehr", 7, PHI_DIFF)

        outcome = await pipeline.run(make_event())

        assert outcome.result.status == Verdict.VIOLATION
        assert outcome.result.risk_score == 40
        assert [f.category for f in outcome.result.findings] == [FindingCategory.PHI_LOGGING]
        assert outcome.published

        record = db.get(AuditRecord, outcome.record_id)
        assert record.entry_hash == outcome.entry.entry_hash
        assert record.status == "VIOLATION"
        assert fake_github.reviews[0]["event"] == "REQUEST_CHANGES"
        assert outcome.entry.entry_hash in fake_github.reviews[0]["body"]

    async def test_secret_forces_violation(self, pipeline, fake_github):
        fake_github.add_pull("acme", "ehr", 7, SECRET_DIFF)

        outcome = await pipeline.run(make_event())

        assert outcome.result.risk_score == 10
        assert outcome.result.status == Verdict.VIOLATION

    async def test_clean_diff_comments(self, pipeline, fake_github):
        fake_github.add_pull("acme", "ehr", 7, CLEAN_DIFF)

        outcome = await pipeline.run(make_event())

        assert outcome.result.status == Verdict.CLEAN
        assert fake_github.reviews[0]["event"] == "COMMENT"

    async def test_consecutive_runs_link(self, pipeline, fake_github, db):
        fake_github.add_pull("acme", "ehr", 7, PHI_DIFF)
        fake_github.add_pull("acme", "portal", 3, CLEAN_DIFF)

        a = await pipeline.run(make_event())
        b = await pipeline.run(make_event(repo="portal", number=3))

        assert a.entry.previous_hash == GENESIS_HASH
        assert b.entry.previous_hash == a.entry.entry_hash
        assert verify_ledger(db).status == VerificationStatus.PASS


class TestDegradedReviewer:
    async def test_reviewer_timeout_keeps_deterministic_verdict(self, pipeline, fake_github):
        fake_github.add_pull("acme", "ehr", 7, PHI_DIFF)
        pipeline.reviewer = slow_reviewer(timeout=0.1)

        loop = asyncio.get_running_loop()
        start = loop.time()
        outcome = await pipeline.run(make_event())

        assert outcome is not None
        assert outcome.result.status == Verdict.VIOLATION
        assert len(outcome.result.findings) == 1
        assert loop.time() - start < pipeline.run_timeout

    async def test_unparseable_reviewer_output(self, pipeline, fake_github):
        fake_github.add_pull("acme", "ehr", 7, CLEAN_DIFF)
        reply = MagicMock()
        reply.choices = [MagicMock()]
        reply.choices[0].message.content = "I could not review this diff."
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=reply)
        pipeline.reviewer = ReviewerAdapter(client, timeout_seconds=1.0)

        outcome = await pipeline.run(make_event())

        assert outcome.result.status == Verdict.CLEAN
        assert outcome.result.findings == ()

    async def test_reviewer_findings_are_merged(self, pipeline, fake_github):
        fake_github.add_pull("acme", "ehr", 7, CLEAN_DIFF)
        reply = MagicMock()
        reply.choices = [MagicMock()]
        reply.choices[0].message.content = json.dumps({
            "status": "VIOLATION",
            "issues": [{"category": "SENSITIVE_FUNCTION", "severity": "HIGH", "message": "Debug on Patient"}],
        })
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=reply)
        pipeline.reviewer = ReviewerAdapter(client, timeout_seconds=1.0)

        outcome = await pipeline.run(make_event())

        assert outcome.result.risk_score == 35
        assert outcome.result.status == Verdict.VIOLATION


class TestAbortedRuns:
    async def test_fetch_failure_aborts_without_ledger_entry(self, pipeline, fake_github, db):
        fake_github.fail_fetch_status = 500

        assert await pipeline.run(make_event()) is None
        assert db.query(AuditChainEntry).count() == 0
        assert fake_github.reviews == []

    async def test_empty_diff_aborts(self, pipeline, fake_github, db):
        fake_github.add_pull("acme", "ehr", 7, "")

        assert await pipeline.run(make_event()) is None
        assert db.query(AuditRecord).count() == 0

    async def test_ledger_conflict_aborts_before_persist(self, pipeline, fake_github, db):
        fake_github.add_pull("acme", "ehr", 7, PHI_DIFF)

        with patch.object(
            pipeline.ledger, "append", AsyncMock(side_effect=LedgerWriteConflict("head moved"))
        ):
            assert await pipeline.run(make_event()) is None

        assert db.query(AuditRecord).count() == 0
        assert fake_github.reviews == []

    async def test_persistence_failure_leaves_orphan_and_skips_publish(self, pipeline, fake_github, db):
        fake_github.add_pull("acme", "ehr", 7, PHI_DIFF)

        with patch.object(
            pipeline.writer, "append", AsyncMock(side_effect=PersistenceError("store down"))
        ):
            assert await pipeline.run(make_event()) is None

        assert fake_github.reviews == []
        report = verify_ledger(db)
        assert report.status == VerificationStatus.DEGRADED

    async def test_publish_failure_keeps_record(self, pipeline, fake_github, db):
        fake_github.add_pull("acme", "ehr", 7, PHI_DIFF)
        fake_github.fail_reviews = True

        outcome = await pipeline.run(make_event())

        assert outcome is not None
        assert not outcome.published
        assert db.get(AuditRecord, outcome.record_id) is not None

    async def test_run_timeout_aborts(self, pipeline, fake_github):
        fake_github.add_pull("acme", "ehr", 7, PHI_DIFF)
        pipeline.reviewer = slow_reviewer(delay=10.0, timeout=10.0)
        pipeline.run_timeout = 0.1

        assert await pipeline.run(make_event()) is None

    async def test_one_failed_run_does_not_affect_another(self, pipeline, fake_github):
        fake_github.add_pull("acme", "ehr", 7, PHI_DIFF)

        missing, ok = await asyncio.gather(
            pipeline.run(make_event(number=404)),
            pipeline.run(make_event()),
        )

        assert missing is None
        assert ok.result.status == Verdict.VIOLATION

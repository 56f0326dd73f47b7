"""
Write-once audit records and read-only queries.
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from phiguard.errors import PersistenceError
from phiguard.models import AppendOnlyViolation, AuditRecord
from phiguard.services.persistence import AuditRecordWriter, get_record, list_records
from phiguard.services.types import AuditContext, AuditResult, Verdict


def context(repo="ehr", number=1):
    return AuditContext(
        repo_owner="acme", repo_name=repo, pr_number=number, title="", description="", diff="+x"
    )


async def persist(ledger, writer, repo="ehr", number=1, status=Verdict.CLEAN, score=0):
    result = AuditResult(status=status, risk_score=score)
    entry = await ledger.append(result)
    record_id = await writer.append(context(repo, number), result, entry, f"report {number}")
    return record_id, entry


class TestWriter:
    async def test_append_persists_record(self, ledger, session_factory, db):
        writer = AuditRecordWriter(session_factory)

        record_id, entry = await persist(ledger, writer, status=Verdict.VIOLATION, score=40)

        record = get_record(db, record_id)
        assert record.repo_name == "acme/ehr"
        assert record.pr_number == 1
        assert record.status == "VIOLATION"
        assert record.risk_score == 40
        assert record.report == "report 1"
        assert record.entry_hash == entry.entry_hash
        assert record.result_canonical == entry.result_canonical
        assert record.created_at is not None

    async def test_store_failure_raises_persistence_error(self, ledger, session_factory):
        writer = AuditRecordWriter(session_factory)
        result = AuditResult(status=Verdict.CLEAN, risk_score=0)
        entry = await ledger.append(result)

        with patch(
            "sqlalchemy.orm.Session.commit",
            side_effect=OperationalError("INSERT", {}, Exception("disk full")),
        ):
            with pytest.raises(PersistenceError) as exc_info:
                await writer.append(context(), result, entry, "r")

        assert exc_info.value.details["entry_hash"] == entry.entry_hash

    async def test_record_cannot_be_updated(self, ledger, session_factory):
        writer = AuditRecordWriter(session_factory)
        record_id, _ = await persist(ledger, writer)

        db = session_factory()
        try:
            record = db.get(AuditRecord, record_id)
            record.status = "CLEAN"
            record.risk_score = 0
            with pytest.raises(AppendOnlyViolation):
                db.commit()
            db.rollback()
        finally:
            db.close()

    async def test_record_cannot_be_deleted(self, ledger, session_factory):
        writer = AuditRecordWriter(session_factory)
        record_id, _ = await persist(ledger, writer)

        db = session_factory()
        try:
            db.delete(db.get(AuditRecord, record_id))
            with pytest.raises(AppendOnlyViolation):
                db.commit()
            db.rollback()
        finally:
            db.close()


class TestQueries:
    async def test_list_newest_first_with_filters(self, ledger, session_factory, db):
        writer = AuditRecordWriter(session_factory)
        first, _ = await persist(ledger, writer, repo="ehr", number=1)
        second, _ = await persist(ledger, writer, repo="billing", number=2, status=Verdict.VIOLATION, score=40)
        third, _ = await persist(ledger, writer, repo="ehr", number=3)

        total, records = list_records(db)
        assert total == 3
        assert [r.id for r in records] == [third, second, first]

        total, records = list_records(db, repo_name="acme/ehr")
        assert total == 2
        assert [r.pr_number for r in records] == [3, 1]

        total, records = list_records(db, status="VIOLATION")
        assert [r.id for r in records] == [second]

    async def test_pagination(self, ledger, session_factory, db):
        writer = AuditRecordWriter(session_factory)
        ids = [(await persist(ledger, writer, number=n))[0] for n in range(1, 6)]

        total, page = list_records(db, limit=2, offset=2)

        assert total == 5
        assert [r.id for r in page] == [ids[2], ids[1]]

    def test_get_missing_returns_none(self, db):
        assert get_record(db, 999) is None

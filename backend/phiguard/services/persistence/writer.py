"""
writer.py - Durable, write-once audit records.

The writer only ever INSERTs. Reads are plain query helpers shared with the
read-only API.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from phiguard.errors import PersistenceError
from phiguard.models import AuditRecord
from phiguard.services.ledger import LedgerEntry
from phiguard.services.types import AuditContext, AuditResult

logger = logging.getLogger(__name__)


class AuditRecordWriter:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def _insert(
        self,
        context: AuditContext,
        result: AuditResult,
        entry: LedgerEntry,
        report: str,
    ) -> int:
        db = self._session_factory()
        try:
            record = AuditRecord(
                repo_name=context.full_name,
                pr_number=context.pr_number,
                status=result.status.value,
                risk_score=result.risk_score,
                report=report,
                result_canonical=entry.result_canonical,
                entry_hash=entry.entry_hash,
                created_at=datetime.now(timezone.utc),
            )
            db.add(record)
            db.commit()
            return record.id
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(
                f"Failed to persist audit record for {context.full_name}#{context.pr_number}",
                details={"entry_hash": entry.entry_hash, "error": type(e).__name__},
            ) from e
        finally:
            db.close()

    async def append(
        self,
        context: AuditContext,
        result: AuditResult,
        entry: LedgerEntry,
        report: str,
    ) -> int:
        """
        Insert the record for one run and return its id.

        Raises:
            PersistenceError: The store rejected the write.
        """
        record_id = await asyncio.to_thread(self._insert, context, result, entry, report)
        logger.info(
            "Audit record %s persisted for %s#%s (%s)",
            record_id,
            context.full_name,
            context.pr_number,
            result.status.value,
        )
        return record_id


def list_records(
    db: Session,
    repo_name: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[int, list[AuditRecord]]:
    """Return (total matching, page) with the newest record first."""
    query = select(AuditRecord)
    if repo_name:
        query = query.where(AuditRecord.repo_name == repo_name)
    if status:
        query = query.where(AuditRecord.status == status)

    total = db.execute(select(func.count()).select_from(query.subquery())).scalar_one()
    page = db.execute(
        query.order_by(AuditRecord.id.desc()).offset(offset).limit(limit)
    ).scalars().all()
    return total, list(page)


def get_record(db: Session, record_id: int) -> Optional[AuditRecord]:
    return db.get(AuditRecord, record_id)

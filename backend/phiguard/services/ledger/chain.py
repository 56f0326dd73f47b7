"""
chain.py - Audit Chain Ledger.

One global, hash-linked chain across every repository. Each audit run
appends exactly one entry:

    data_hash  = SHA-256(canonical AuditResult)
    entry_hash = SHA-256(timestamp || data_hash || previous_hash)

Appends are serialized in-process by an asyncio.Lock. Across processes the
unique constraint on previous_hash rejects the second of two writers that
read the same head; that writer re-reads the head and retries, up to
max_retries times.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from phiguard.errors import LedgerWriteConflict
from phiguard.models import AuditChainEntry, AuditRecord
from phiguard.services.types import AuditResult
from phiguard_verify import (
    GENESIS_HASH,
    canonicalize,
    compute_entry_hash,
    sha256_hex,
    verify_chain,
)
from phiguard_verify.errors import ChainVerificationReport

logger = logging.getLogger(__name__)

UTC = timezone.utc


def rfc3339_now() -> str:
    return datetime.now(UTC).isoformat(timespec="microseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class LedgerEntry:
    sequence: int
    timestamp: str
    data_hash: str
    previous_hash: str
    entry_hash: str
    result_canonical: str


def canonical_result(result: AuditResult) -> str:
    return canonicalize(result.to_dict()).decode("utf-8")


def _head_hash(db: Session) -> str:
    head = db.execute(
        select(AuditChainEntry.entry_hash)
        .order_by(AuditChainEntry.sequence.desc())
        .limit(1)
    ).scalar_one_or_none()
    return head or GENESIS_HASH


def export_ledger(db: Session) -> dict[str, Any]:
    """
    Ordered ledger entries plus the canonical result of every persisted record.

    The shape is accepted as-is by ``phiguard-verify verify``.
    """
    entries = db.execute(
        select(AuditChainEntry).order_by(AuditChainEntry.sequence.asc())
    ).scalars().all()
    records = db.execute(
        select(AuditRecord.entry_hash, AuditRecord.result_canonical)
    ).all()
    return {
        "entries": [e.to_dict() for e in entries],
        "records": {entry_hash: canonical for entry_hash, canonical in records},
    }


def verify_ledger(db: Session) -> ChainVerificationReport:
    """Walk the stored chain and cross-check it against persisted records."""
    exported = export_ledger(db)
    report = verify_chain(exported["entries"], records=exported["records"])
    logger.info(
        "Ledger verification: %s (%d entries, %d findings)",
        report.status.value,
        report.entry_count,
        len(report.findings),
    )
    return report


class AuditLedger:
    """Append side of the ledger. One instance per process."""

    def __init__(
        self,
        session_factory: sessionmaker,
        max_retries: int = 3,
        clock: Callable[[], str] = rfc3339_now,
    ) -> None:
        self._session_factory = session_factory
        self._max_retries = max_retries
        self._clock = clock
        self._lock = asyncio.Lock()

    def _append_once(self, result_canonical: str) -> LedgerEntry:
        data_hash = sha256_hex(result_canonical.encode("utf-8"))
        db = self._session_factory()
        try:
            previous_hash = _head_hash(db)
            timestamp = self._clock()
            entry = AuditChainEntry(
                timestamp=timestamp,
                data_hash=data_hash,
                previous_hash=previous_hash,
                entry_hash=compute_entry_hash(timestamp, data_hash, previous_hash),
            )
            db.add(entry)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise LedgerWriteConflict(
                    "Ledger head moved during append",
                    details={"previous_hash": previous_hash},
                ) from e
            return LedgerEntry(
                sequence=entry.sequence,
                timestamp=entry.timestamp,
                data_hash=entry.data_hash,
                previous_hash=entry.previous_hash,
                entry_hash=entry.entry_hash,
                result_canonical=result_canonical,
            )
        finally:
            db.close()

    async def append(self, result: AuditResult) -> LedgerEntry:
        """
        Append one entry for ``result``.

        Raises:
            LedgerWriteConflict: Still conflicting after max_retries retries.
        """
        result_canonical = canonical_result(result)
        async with self._lock:
            attempt = 0
            while True:
                try:
                    entry = await asyncio.to_thread(self._append_once, result_canonical)
                except LedgerWriteConflict:
                    attempt += 1
                    if attempt > self._max_retries:
                        logger.error("Ledger append failed after %d retries", self._max_retries)
                        raise
                    logger.warning(
                        "Ledger append conflict, retrying (%d/%d)",
                        attempt,
                        self._max_retries,
                    )
                    continue
                logger.info(
                    "Ledger entry appended: seq=%s hash=%s",
                    entry.sequence,
                    entry.entry_hash[:12],
                )
                return entry

    def head(self) -> str:
        db = self._session_factory()
        try:
            return _head_hash(db)
        finally:
            db.close()

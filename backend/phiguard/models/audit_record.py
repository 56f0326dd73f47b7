"""
audit_record.py - Durable projection of one audit run.

Write-once. Insertion order is the primary key order. Each record points at
the ledger entry that covers it (entry_hash); result_canonical is the exact
serialization that entry's data_hash was computed over.
"""

from sqlalchemy import Column, DateTime, Index, Integer, String, Text

from phiguard.database import Base

from .append_only import AppendOnly, attach_mutation_trigger


class AuditRecord(AppendOnly, Base):
    __tablename__ = "audit_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    repo_name = Column(String(255), nullable=False, index=True)  # owner/name
    pr_number = Column(Integer, nullable=False)
    status = Column(String(16), nullable=False, index=True)  # CLEAN | VIOLATION
    risk_score = Column(Integer, nullable=False)
    report = Column(Text, nullable=False)  # Rendered Markdown, as posted
    result_canonical = Column(Text, nullable=False)
    entry_hash = Column(String(64), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_audit_records_repo_pr", "repo_name", "pr_number"),
    )


attach_mutation_trigger(AuditRecord.__table__)

"""
audit.py - Pydantic schemas for the read-only audit API.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class AuditRecordRead(BaseModel):
    """Read-only audit record."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Record id (insertion order)")
    repo_name: str = Field(..., description="owner/name")
    pr_number: int = Field(..., description="Pull request number")
    status: str = Field(..., description="CLEAN | VIOLATION")
    risk_score: int = Field(..., description="0-100")
    report: str = Field(..., description="Markdown report as posted")
    result_canonical: str = Field(
        ..., description="Canonical result JSON covered by the ledger data_hash"
    )
    entry_hash: str = Field(..., description="Ledger entry covering this record")
    created_at: datetime = Field(..., description="Commit timestamp")


class AuditSummary(BaseModel):
    """Paginated audit list response."""

    total: int = Field(..., description="Total matching records")
    audits: list[AuditRecordRead] = Field(..., description="Audit records, newest first")


class LedgerExport(BaseModel):
    entries: list[dict] = Field(..., description="Chain entries in sequence order")
    records: dict[str, str] = Field(
        ..., description="entry_hash -> canonical result of the persisted record"
    )

"""
audits.py - Audit record API endpoints.

Read-only. No mutation. No soft delete.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session as DBSession

from phiguard.database import get_db
from phiguard.schemas.audit import AuditRecordRead, AuditSummary
from phiguard.services.persistence import get_record, list_records

router = APIRouter()


@router.get("", response_model=AuditSummary, summary="List audit records")
def list_audits(
    repo_name: str | None = Query(None, description="Filter by owner/name"),
    status: str | None = Query(None, description="CLEAN | VIOLATION"),
    limit: int = Query(100, ge=1, le=1000, description="Max results"),
    offset: int = Query(0, ge=0, description="Offset for pagination"),
    db: DBSession = Depends(get_db),
) -> AuditSummary:
    total, records = list_records(
        db, repo_name=repo_name, status=status, limit=limit, offset=offset
    )
    return AuditSummary(
        total=total,
        audits=[AuditRecordRead.model_validate(r) for r in records],
    )


@router.get("/{record_id}", response_model=AuditRecordRead, summary="Get one audit record")
def get_audit(record_id: int, db: DBSession = Depends(get_db)) -> AuditRecordRead:
    record = get_record(db, record_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Audit record {record_id} not found")
    return AuditRecordRead.model_validate(record)

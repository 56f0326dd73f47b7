"""
ledger.py - Ledger verification and export.

Verification reports findings; it never repairs anything.
"""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DBSession

from phiguard.database import get_db
from phiguard.schemas.audit import LedgerExport
from phiguard.services.ledger import export_ledger, verify_ledger

router = APIRouter()


@router.get("/verify", summary="Verify the audit chain")
def verify(db: DBSession = Depends(get_db)) -> dict[str, Any]:
    return verify_ledger(db).to_dict()


@router.get("/export", response_model=LedgerExport, summary="Export the audit chain")
def export(db: DBSession = Depends(get_db)) -> LedgerExport:
    return LedgerExport(**export_ledger(db))

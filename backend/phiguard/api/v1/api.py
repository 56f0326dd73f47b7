from fastapi import APIRouter

from phiguard.api.v1.endpoints import audits, ledger

router = APIRouter()

router.include_router(audits.router, prefix="/audits", tags=["audits"])
router.include_router(ledger.router, prefix="/ledger", tags=["ledger"])

from .chain import AuditLedger, LedgerEntry, export_ledger, verify_ledger

__all__ = ["AuditLedger", "LedgerEntry", "export_ledger", "verify_ledger"]

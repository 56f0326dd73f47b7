from .append_only import AppendOnlyViolation
from .audit_chain import AuditChainEntry
from .audit_record import AuditRecord

__all__ = ["AuditChainEntry", "AuditRecord", "AppendOnlyViolation"]

"""
errors.py - Audit Error Taxonomy

Errors are contracts, not strings. Every failure the pipeline can hit maps to
exactly one code, and each code has one handling rule:

- AUTH_INVALID, EVENT_MALFORMED: reject the HTTP request, no processing
- FETCH_FAILED, PERSIST_FAILED, LEDGER_CONFLICT (after retries): abort this run
- REVIEWER_FAILED, STATIC_ANALYSIS_FAILED: degrade, never abort
- PUBLISH_FAILED: log only, never unwind ledger or persistence
"""
from enum import Enum
from typing import Any, Dict, Optional


class AuditErrorCode(str, Enum):
    AUTH_INVALID = "AUDIT_AUTH_INVALID"
    EVENT_MALFORMED = "AUDIT_EVENT_MALFORMED"
    FETCH_FAILED = "AUDIT_FETCH_FAILED"
    REVIEWER_FAILED = "AUDIT_REVIEWER_FAILED"
    STATIC_ANALYSIS_FAILED = "AUDIT_STATIC_ANALYSIS_FAILED"
    LEDGER_CONFLICT = "AUDIT_LEDGER_CONFLICT"
    PERSIST_FAILED = "AUDIT_PERSIST_FAILED"
    PUBLISH_FAILED = "AUDIT_PUBLISH_FAILED"


class AuditError(Exception):
    """Base class for all pipeline failures."""

    code: AuditErrorCode

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class AuthenticationError(AuditError):
    """Webhook signature missing, malformed or wrong."""

    code = AuditErrorCode.AUTH_INVALID


class ParseError(AuditError):
    """Webhook body is not a well-formed event."""

    code = AuditErrorCode.EVENT_MALFORMED


class FetchError(AuditError):
    """Diff or pull request metadata unavailable."""

    code = AuditErrorCode.FETCH_FAILED


class ReviewerError(AuditError):
    """Contextual reviewer unavailable, timed out or returned garbage."""

    code = AuditErrorCode.REVIEWER_FAILED


class StaticAnalysisError(AuditError):
    """Static-analysis tool failed to run or produced unreadable output."""

    code = AuditErrorCode.STATIC_ANALYSIS_FAILED


class LedgerWriteConflict(AuditError):
    """Another writer appended against the same previous_hash."""

    code = AuditErrorCode.LEDGER_CONFLICT


class PersistenceError(AuditError):
    """Audit record could not be written."""

    code = AuditErrorCode.PERSIST_FAILED


class PublishError(AuditError):
    """Review could not be posted back to the pull request."""

    code = AuditErrorCode.PUBLISH_FAILED

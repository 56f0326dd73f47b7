from .writer import AuditRecordWriter, get_record, list_records

__all__ = ["AuditRecordWriter", "get_record", "list_records"]

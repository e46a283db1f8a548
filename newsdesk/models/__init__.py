from newsdesk.models.entities import AuditLog, ContentRecord, RecordStatus

__all__ = ["AuditLog", "ContentRecord", "RecordStatus"]

"""Database models."""

from ferryman.data.models.audit_event import AuditAction, AuditEvent
from ferryman.data.models.base import Base, BaseModel
from ferryman.data.models.migration_record import MigrationRecord

__all__ = [
    "AuditAction",
    "AuditEvent",
    "Base",
    "BaseModel",
    "MigrationRecord",
]

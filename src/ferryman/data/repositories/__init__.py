"""Repositories package."""

from ferryman.data.repositories.audit_event import AuditEventRepository
from ferryman.data.repositories.base import BaseRepository
from ferryman.data.repositories.migration_record import MigrationRecordRepository

__all__ = [
    "AuditEventRepository",
    "BaseRepository",
    "MigrationRecordRepository",
]

"""Audit event model."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import ForeignKey, String
from sqlalchemy import Enum as SqlEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ferryman.data.models.base import BaseModel

if TYPE_CHECKING:
    from ferryman.data.models.migration_record import MigrationRecord


class AuditAction(str, Enum):
    """Operations that leave an audit trail."""

    TRANSLATE = "translate"
    PLUGIN_SCAN = "plugin_scan"
    CREDENTIAL_SCAN = "credential_scan"


class AuditEvent(BaseModel):
    """One audited operation, optionally tied to a migration record."""

    __tablename__ = "audit_events"

    action: Mapped[AuditAction] = mapped_column(
        SqlEnum(
            AuditAction,
            values_callable=lambda obj: [item.value for item in obj],
        ),
        nullable=False,
    )
    actor: Mapped[str] = mapped_column(String(255), nullable=False, default="api")
    details: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)
    record_id: Mapped[int | None] = mapped_column(
        ForeignKey("migration_records.id", ondelete="CASCADE"),
        nullable=True,
    )

    record: Mapped[MigrationRecord | None] = relationship(back_populates="events")

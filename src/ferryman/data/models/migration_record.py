"""Migration record model for translation history."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ferryman.data.models.base import BaseModel

if TYPE_CHECKING:
    from ferryman.data.models.audit_event import AuditEvent


class MigrationRecord(BaseModel):
    """A finished translation of one Jenkinsfile.

    Stores the source script, the generated configuration and the
    headline numbers. Secret values are never part of either text.
    """

    __tablename__ = "migration_records"

    source_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source_text: Mapped[str] = mapped_column(Text, nullable=False)
    output_text: Mapped[str] = mapped_column(Text, nullable=False)
    checklist: Mapped[str] = mapped_column(Text, nullable=False, default="")
    readiness_score: Mapped[int] = mapped_column(Integer, nullable=False)
    complexity_tier: Mapped[str] = mapped_column(String(16), nullable=False)
    extraction_confidence: Mapped[float] = mapped_column(Float, nullable=False)
    plugin_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    variable_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    events: Mapped[list[AuditEvent]] = relationship(
        back_populates="record",
        cascade="all, delete-orphan",
    )

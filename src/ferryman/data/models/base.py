"""Declarative base for the migration history tables.

History rows are append-only: a translation or scan is written once and
never edited, so models carry an id and a creation time but no update
timestamp.
"""

from datetime import datetime
from typing import Any, ClassVar

from sqlalchemy import JSON, DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Text columns longer than this are summarised in repr() output.
REPR_TEXT_LIMIT = 40


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict[Any, Any]] = {
        datetime: DateTime(timezone=True),
        dict[str, Any]: JSON,
    }


class BaseModel(Base):
    """Abstract history row with an integer id and creation time."""

    __abstract__ = True

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        parts = []
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, str) and len(value) > REPR_TEXT_LIMIT:
                parts.append(f"{column.name}=<{len(value)} chars>")
            else:
                parts.append(f"{column.name}={value!r}")
        return f"{self.__class__.__name__}({', '.join(parts)})"

"""Tests for database configuration and generic repository operations."""

from pathlib import Path

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ferryman.data import database
from ferryman.data.database import configure_engine, get_engine, init_db
from ferryman.data.models.base import Base
from ferryman.data.models.migration_record import MigrationRecord
from ferryman.data.repositories.base import BaseRepository


@pytest.fixture(scope="function")
def test_db_path(tmp_path: Path) -> Path:
    """Create a temporary database file path."""
    return tmp_path / "test.db"


def _record_fields(name: str = "Jenkinsfile", score: int = 80) -> dict[str, object]:
    return {
        "source_name": name,
        "source_text": "pipeline {}",
        "output_text": "stages: []\n",
        "readiness_score": score,
        "complexity_tier": "simple",
        "extraction_confidence": 1.0,
    }


class TestDatabaseConnection:
    """Test database connection and session management."""

    async def test_get_engine_creates_engine(self) -> None:
        """Test that get_engine creates a valid engine."""
        engine = get_engine("sqlite+aiosqlite:///:memory:")
        assert engine is not None
        await engine.dispose()

    async def test_configure_engine_and_init_db(self, test_db_path: Path) -> None:
        """init_db creates the tables on the configured engine."""
        engine = configure_engine(f"sqlite+aiosqlite:///{test_db_path}")
        assert database.engine is engine

        await init_db()

        async with engine.connect() as conn:
            result = await conn.execute(select(MigrationRecord))
            assert result.all() == []

        await engine.dispose()


class TestBaseRepository:
    """Test base repository CRUD operations."""

    async def test_crud_operations(self, test_db_path: Path) -> None:
        """Test complete CRUD cycle."""
        engine = get_engine(f"sqlite+aiosqlite:///{test_db_path}")

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        async_session = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        async with async_session() as session:
            repo = BaseRepository(MigrationRecord, session)

            record = await repo.create(**_record_fields())
            assert record.id is not None
            assert record.created_at is not None
            assert record.plugin_count == 0
            assert record.checklist == ""

            retrieved = await repo.get_by_id(record.id)
            assert retrieved is not None
            assert retrieved.source_name == "Jenkinsfile"

            await repo.create(**_record_fields("other"))
            assert [r.source_name for r in await repo.get_all()] == ["Jenkinsfile", "other"]
            assert [r.source_name for r in await repo.get_all(limit=1, offset=1)] == ["other"]
            assert await repo.count() == 2

            assert await repo.delete(record.id) is True
            assert await repo.get_by_id(record.id) is None
            assert await repo.delete(record.id) is False

        await engine.dispose()


class TestBaseModel:
    """Test BaseModel functionality."""

    async def test_repr_and_timestamp(self, test_db_path: Path) -> None:
        """Rows get a creation time and a repr that summarises long text."""
        engine = get_engine(f"sqlite+aiosqlite:///{test_db_path}")

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        async_session = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        async with async_session() as session:
            fields = {**_record_fields(), "output_text": "x" * 120}
            record = await BaseRepository(MigrationRecord, session).create(**fields)

            assert record.created_at is not None
            assert not hasattr(record, "updated_at")

            repr_str = repr(record)
            assert repr_str.startswith("MigrationRecord(")
            assert "source_name='Jenkinsfile'" in repr_str
            assert "source_text='pipeline {}'" in repr_str
            assert "output_text=<120 chars>" in repr_str

        await engine.dispose()

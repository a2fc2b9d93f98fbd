"""Engine configuration and SAVEPOINT support on the test engine."""

from __future__ import annotations

from sqlalchemy import text

from leave_ledger.config import settings
from leave_ledger.database import _engine_options
from tests.conftest import TestSessionFactory


class TestEngineOptions:

    def test_postgres_gets_pool_settings(self):
        options = _engine_options("postgresql+asyncpg://u:p@db/leave_ledger")
        assert options["pool_size"] == settings.DB_POOL_SIZE
        assert options["max_overflow"] == settings.DB_MAX_OVERFLOW
        assert options["pool_pre_ping"] is True

    def test_sqlite_skips_pool_settings(self):
        options = _engine_options("sqlite+aiosqlite://")
        assert "pool_size" not in options
        assert "max_overflow" not in options


class TestSavepoints:

    async def test_nested_rollback_keeps_outer_work(self):
        async with TestSessionFactory() as session:
            await session.execute(text("CREATE TEMP TABLE savepoint_rows (n INTEGER)"))
            await session.execute(text("INSERT INTO savepoint_rows VALUES (1)"))
            try:
                async with session.begin_nested():
                    await session.execute(text("INSERT INTO savepoint_rows VALUES (2)"))
                    raise RuntimeError("roll back the savepoint")
            except RuntimeError:
                pass
            rows = (await session.execute(text("SELECT n FROM savepoint_rows"))).scalars().all()
            await session.rollback()

        assert rows == [1]

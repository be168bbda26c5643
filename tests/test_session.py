import itertools
import logging

import pytest
from sqlalchemy import text

from memory_bank.db import session as session_module


def test_configure_database_uses_the_given_url(tmp_path, monkeypatch):
    monkeypatch.setattr(session_module, "async_engine", session_module.async_engine)
    monkeypatch.setattr(session_module, "AsyncSessionLocal", session_module.AsyncSessionLocal)

    session_module.configure_database(f"sqlite+aiosqlite:///{tmp_path / 'local.db'}")

    assert session_module.async_engine.url.drivername == "sqlite+aiosqlite"
    assert session_module.async_engine.url.database.endswith("local.db")
    assert session_module.AsyncSessionLocal.kw["bind"] is session_module.async_engine


@pytest.mark.asyncio
async def test_slow_queries_are_logged(tmp_path, monkeypatch, caplog):
    monkeypatch.setattr(session_module.settings, "SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS", 500)
    # Every reading of the clock advances one second.
    ticks = itertools.count()
    monkeypatch.setattr(session_module, "perf_counter", lambda: float(next(ticks)))

    engine = session_module.build_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'slow.db'}")
    try:
        with caplog.at_level(logging.WARNING, logger="memory_bank.db.session"):
            async with engine.connect() as connection:
                await connection.execute(text("SELECT 1"))
    finally:
        await engine.dispose()

    assert any("Slow SQL" in record.getMessage() and "SELECT 1" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_slow_query_logging_can_be_disabled(tmp_path, monkeypatch, caplog):
    monkeypatch.setattr(session_module.settings, "SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS", 0)
    ticks = itertools.count(step=10)
    monkeypatch.setattr(session_module, "perf_counter", lambda: float(next(ticks)))

    engine = session_module.build_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'fast.db'}")
    try:
        with caplog.at_level(logging.WARNING, logger="memory_bank.db.session"):
            async with engine.connect() as connection:
                await connection.execute(text("SELECT 1"))
    finally:
        await engine.dispose()

    assert not any("Slow SQL" in record.getMessage() for record in caplog.records)

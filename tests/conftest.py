"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test-memory-bank.db")
os.environ.setdefault("SECRET_KEY", "secret-key")

# Ensure the memory_bank package is importable when tests run from the repo root.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

from memory_bank.db.session import build_async_engine, build_session_factory, create_all_tables  # noqa: E402


NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def clock(now):
    return lambda: now


@pytest_asyncio.fixture()
async def engine(tmp_path):
    # A file database so that every session opened by the services sees the same data.
    engine = build_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'review.db'}")
    await create_all_tables(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return build_session_factory(engine)

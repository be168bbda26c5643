"""Database engine and session utilities.

The review scheduler only talks to the database through asynchronous
sessions. Each queue build opens one session per resource kind so the four
per-kind reads can run side by side, which is why the module hands out a
session *factory* rather than a single shared session.
"""

from __future__ import annotations

import logging
from time import perf_counter

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from memory_bank.core.config import settings
from memory_bank.db.base_class import Base

logger = logging.getLogger(__name__)

# These globals are populated by ``configure_database``.
async_engine: AsyncEngine
AsyncSessionLocal: async_sessionmaker


def _install_slow_query_logger(engine: Engine) -> None:
    """Attach callbacks that warn when queries exceed the configured budget."""

    threshold_ms = max(settings.SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS or 0, 0)
    if threshold_ms == 0:
        return

    marker = "_memory_bank_slow_query_hook"
    if getattr(engine, marker, False):
        return

    setattr(engine, marker, True)

    def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):  # type: ignore[override]
        context._memory_bank_query_start = perf_counter()

    def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):  # type: ignore[override]
        start = getattr(context, "_memory_bank_query_start", None)
        if start is None:
            return

        elapsed_ms = (perf_counter() - start) * 1000.0
        if elapsed_ms < threshold_ms:
            return

        snippet = " ".join(statement.split()) if isinstance(statement, str) else str(statement)
        if len(snippet) > 200:
            snippet = snippet[:197] + "..."

        logger.warning("Slow SQL (%.1f ms) - %s", elapsed_ms, snippet)

    event.listen(engine, "before_cursor_execute", _before_cursor_execute)
    event.listen(engine, "after_cursor_execute", _after_cursor_execute)


def build_async_engine(database_url: str) -> AsyncEngine:
    """Create an async engine for ``database_url`` with SQL timing hooks."""

    url = make_url(database_url)
    connect_args: dict[str, object] = {}
    if url.drivername.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    engine = create_async_engine(
        database_url,
        echo=False,
        future=True,
        pool_pre_ping=not url.drivername.startswith("sqlite"),
        connect_args=connect_args,
    )
    _install_slow_query_logger(engine.sync_engine)
    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)


def configure_database(database_url: str | None = None) -> None:
    """Initialise the engine and session factory.

    ``database_url`` defaults to the environment configuration.
    """

    global async_engine, AsyncSessionLocal

    target_url = str(database_url or settings.DATABASE_URL)
    logger.info("Configuring database: %s", make_url(target_url).render_as_string(hide_password=True))

    async_engine = build_async_engine(target_url)
    AsyncSessionLocal = build_session_factory(async_engine)


async def create_all_tables(engine: AsyncEngine | None = None) -> None:
    """Create the resource tables when they do not exist yet (dev/test helper)."""

    # Register the mapped tables on ``Base.metadata``.
    import memory_bank.models  # noqa: F401

    target = engine or async_engine
    async with target.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)


# Initialise the engine at import time so the rest of the application can use
# it immediately. No connection is opened until the first query.
configure_database()

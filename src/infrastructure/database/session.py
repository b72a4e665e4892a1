"""Database engine and session factory."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.config import Settings, settings

_POOLER_MARKERS = ("pooler", "pgbouncer")


def create_engine(config: Settings) -> AsyncEngine:
    """Create the async engine for ``config.async_database_url``.

    asyncpg's prepared statement cache breaks under transaction-mode poolers
    (PgBouncer, Supavisor), so it is turned off when the URL points at one.
    """
    url = config.async_database_url
    connect_args: dict = {}
    if url.startswith("postgresql+asyncpg") and any(m in url for m in _POOLER_MARKERS):
        connect_args["statement_cache_size"] = 0

    return create_async_engine(
        url,
        echo=config.debug,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory shared by every Unit of Work.

    Repositories flush explicitly after each write, so autoflush stays off.
    """
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = create_engine(settings)
async_session_factory = create_session_factory(engine)

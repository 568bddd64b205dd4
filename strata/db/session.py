"""Engine and session construction from settings."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from advanced_alchemy.config import AsyncSessionConfig, EngineConfig, SQLAlchemyAsyncConfig

from strata.config import Settings
from strata.db.base import Base
from strata.db.storage import SQLAlchemyPageStorage
from strata.lib.observability import instrument_sqlalchemy


def build_db_config(settings: Settings) -> SQLAlchemyAsyncConfig:
    """Build the SQLAlchemy async database configuration."""
    if "sqlite" in settings.db.url:
        engine_config = EngineConfig(echo=settings.db.echo)
    else:
        engine_config = EngineConfig(
            pool_size=settings.db.pool_size,
            max_overflow=settings.db.pool_overflow,
            pool_timeout=settings.db.pool_timeout,
            pool_pre_ping=settings.db.pool_pre_ping,
            echo=settings.db.echo,
        )

    return SQLAlchemyAsyncConfig(
        connection_string=settings.db.url,
        metadata=Base.metadata,
        create_all=False,
        session_config=AsyncSessionConfig(expire_on_commit=True),
        engine_config=engine_config,
    )


@asynccontextmanager
async def open_storage(settings: Settings) -> AsyncIterator[SQLAlchemyPageStorage]:
    """Yield a page storage bound to a fresh session, disposing the engine afterwards."""
    config = build_db_config(settings)
    engine = config.get_engine()
    instrument_sqlalchemy(engine)
    session_maker = config.create_session_maker()
    try:
        async with session_maker() as session:
            yield SQLAlchemyPageStorage(session)
    finally:
        await engine.dispose()

"""Async database engine and session factory shared by handlers and duel storage."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from duel_arena.config import get_settings


def create_engine() -> AsyncEngine:
    """Create async database engine.

    Connections are pinged before reuse: the bot idles between duels for
    longer than most server-side connection timeouts.
    """
    settings = get_settings()
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_pre_ping=True,
    )


engine = create_engine()

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

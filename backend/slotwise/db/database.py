"""
Database configuration and session management

NOTE: When running with multiple workers (uvicorn --workers N), each worker
gets its own copy of the engine. Using NullPool prevents connection exhaustion
by creating connections on-demand and closing them immediately after use.
"""
from typing import AsyncGenerator, Any, Dict, Tuple
from urllib.parse import urlparse, parse_qs, urlencode, urlunparse

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from slotwise.core.config import settings


def database_url_and_connect_args(url: str) -> Tuple[str, Dict[str, Any]]:
    """Build engine URL and connect_args. asyncpg does not accept sslmode in the URL."""
    if not url.startswith("postgresql"):
        return url, {}

    use_ssl = "ssl=require" in url or "sslmode=require" in url
    # Strip ssl params so they are not passed to asyncpg.connect() (causes TypeError)
    parsed = urlparse(url)
    if parsed.query:
        qs = parse_qs(parsed.query, keep_blank_values=True)
        qs.pop("ssl", None)
        qs.pop("sslmode", None)
        qs.pop("channel_binding", None)
        new_query = urlencode([(k, v[0]) for k, v in qs.items()])
        url = urlunparse(parsed._replace(query=new_query))
    connect_args: Dict[str, Any] = {
        "command_timeout": 30,
        "timeout": 15,
    }
    if use_ssl:
        connect_args["ssl"] = True
    return url, connect_args


_engine_url, _connect_args = database_url_and_connect_args(settings.database_url)

engine = create_async_engine(
    _engine_url,
    echo=False,
    future=True,
    poolclass=NullPool,
    connect_args=_connect_args,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting database session"""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def create_tables():
    """Create all tables (for development only)"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

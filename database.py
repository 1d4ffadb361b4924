import ssl
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from config import Settings


def _build_postgres_urls(
    url: URL,
    ssl_mode: str,
    ssl_cert_path: Optional[str],
) -> Tuple[str, Dict[str, Any]]:
    query = dict(url.query)
    query.pop("sslmode", None)
    async_url = url.set(drivername="postgresql+asyncpg", query=query)

    connect_args: Dict[str, Any]
    if ssl_cert_path:
        ssl_context = ssl.create_default_context(cafile=ssl_cert_path)
        ssl_context.verify_mode = ssl.CERT_REQUIRED
        ssl_context.check_hostname = True
        connect_args = {"ssl": ssl_context}
    elif ssl_mode.lower() == "disable":
        connect_args = {"ssl": False}
    else:
        connect_args = {"ssl": True}

    return async_url.render_as_string(hide_password=False), connect_args


def resolve_database_url(settings: Settings) -> Tuple[str, Dict[str, Any]]:
    """Return the async driver URL and connect args for the configured database."""
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is missing")

    url: URL = make_url(settings.database_url)
    if url.drivername.startswith("postgres"):
        return _build_postgres_urls(
            url,
            settings.database_sslmode,
            settings.database_ssl_root_cert,
        )
    if url.drivername == "sqlite":
        url = url.set(drivername="sqlite+aiosqlite")
    return url.render_as_string(hide_password=False), {}


def build_engine(settings: Settings) -> AsyncEngine:
    database_url, connect_args = resolve_database_url(settings)

    if database_url.startswith("sqlite"):
        # in-memory databases only live as long as their single connection
        return create_async_engine(
            database_url,
            echo=settings.database_echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_async_engine(
        database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_timeout=settings.database_pool_timeout,
        pool_recycle=settings.database_pool_recycle,
        pool_pre_ping=True,
        echo=settings.database_echo,
        connect_args=connect_args,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from mindsage.config import settings


def _connect_args(url: str) -> dict:
    # asyncpg enforces a per-statement timeout; other drivers take none
    if url.startswith("postgresql+asyncpg"):
        return {"command_timeout": settings.store_timeout_seconds}
    return {}


engine = create_async_engine(
    settings.database_url,
    pool_size=20,
    pool_pre_ping=True,
    pool_recycle=3600,
    pool_timeout=settings.store_timeout_seconds,
    max_overflow=5,
    echo=settings.environment == "development",
    connect_args=_connect_args(settings.database_url),
)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

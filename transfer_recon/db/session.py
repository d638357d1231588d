from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from transfer_recon.db.settings import Settings, get_settings


def build_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(settings.database_url, echo=settings.database_echo, pool_pre_ping=True)


engine = build_engine(get_settings())
AsyncSessionLocal = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; the ledger commits or rolls back its own writes."""
    async with AsyncSessionLocal() as session:
        yield session

from typing import AsyncIterator
from fastapi import Request
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from .config import Settings
from .base import Base


class Database:
    """Engine + session factory owned by one application instance."""

    def __init__(self, settings: Settings):
        kwargs = {}
        if settings.POSTGRES_DSN.startswith("postgresql"):
            kwargs["pool_pre_ping"] = True
        self.engine: AsyncEngine = create_async_engine(settings.POSTGRES_DSN, **kwargs)
        self.sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False, class_=AsyncSession)
        self.manage = settings.DB_MANAGE

    async def init_models(self):
        ## In dev-only "create_all" mode build the schema here; otherwise, migrations own it.
        if self.manage == "create_all":
            import app.models  # noqa: F401  registers every table on Base.metadata
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

    async def dispose(self):
        await self.engine.dispose()


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.db.sessionmaker() as session:
        yield session

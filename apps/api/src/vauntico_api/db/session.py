from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from vauntico_api.core.settings import settings


def build_engine(database_url: str) -> AsyncEngine:
    connect_args = {"timeout": 30} if database_url.startswith("sqlite") else {}
    return create_async_engine(database_url, future=True, connect_args=connect_args)


engine = build_engine(settings.database_url)
async_session = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def init_models(target: AsyncEngine | None = None) -> None:
    """Create missing tables; production schemas are managed by Alembic."""

    from vauntico_api.db.base import Base
    import vauntico_api.models  # noqa: F401

    async with (target or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


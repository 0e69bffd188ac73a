from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from hydrobot.config import settings
# Импортируем модели, чтобы таблицы были зарегистрированы в SQLModel.metadata
from hydrobot.models import KeyValueEntry  # noqa: F401


def make_session_factory(engine: AsyncEngine):
    maker = async_sessionmaker(
        engine,
        expire_on_commit=False,
        class_=AsyncSession,
    )

    @asynccontextmanager
    async def session_scope() -> AsyncIterator[AsyncSession]:
        session = maker()
        try:
            yield session
        finally:
            await session.close()

    return session_scope


engine = create_async_engine(
    settings.database_url,
    echo=False,
    future=True,
)
get_session = make_session_factory(engine)


async def init_db(target: AsyncEngine | None = None) -> None:
    async with (target or engine).begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)

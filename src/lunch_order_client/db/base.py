from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Annotated
from datetime import datetime, timezone

from sqlalchemy import MetaData, DateTime
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, mapped_column

from lunch_order_client.exceptions import DatabaseError

# Составные уникальные ключи (группа + участник + блюдо) получают имя по всем колонкам
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=convention)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)

# Время ставится на стороне приложения: SQLite не хранит таймзону
CreatedAt = Annotated[datetime, mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)]


@asynccontextmanager
async def session_scope(session_factory: async_sessionmaker[AsyncSession], action: str) -> AsyncIterator[AsyncSession]:
    """
    Сессия справочных репозиториев: ошибка SQLAlchemy откатывает транзакцию
    и превращается в DatabaseError("Failed to <action>: ...").
    """
    async with session_factory() as session:
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            raise DatabaseError(f"Failed to {action}: {e}") from e

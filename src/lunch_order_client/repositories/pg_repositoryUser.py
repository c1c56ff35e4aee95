# Файл: lunch_order_client/repositories/pg_repositoryUser.py

import logging
from typing import Dict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from lunch_order_client.db import UserORM
from lunch_order_client.db.base import session_scope

logger = logging.getLogger(__name__)


async def stage_user(session: AsyncSession, user_id: str, username: str) -> None:
    """
    Создает пользователя или заполняет пустое имя в рамках чужой транзакции.
    Commit и rollback остаются за вызывающим.
    """
    if not username:
        return
    user = await session.get(UserORM, user_id)
    if user is None:
        session.add(UserORM(id=user_id, username=username))
        logger.info(f"Stored username for user {user_id}")
    elif not user.username:
        user.username = username
        logger.info(f"Stored username for user {user_id}")


class UserRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_usernames(self) -> Dict[str, str]:
        """Справочник id -> имя."""
        async with session_scope(self._session_factory, "list users") as session:
            result = await session.execute(select(UserORM.id, UserORM.username))
            return {user_id: username for user_id, username in result.all()}

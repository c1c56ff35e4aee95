# Файл: lunch_order_client/repositories/sql_gateway.py

import logging
from typing import Dict, List

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from lunch_order_client.exceptions import DatabaseError
from lunch_order_client.models import (DishDelta, Group, GroupCreate, GroupJoin, GroupLeave,
                                       GroupSubmit, MemberDetail, ReferenceData)
from lunch_order_client.repositories.gateway import GroupGateway
from lunch_order_client.repositories.pg_repositoryGroup import GroupRepository
from lunch_order_client.repositories.pg_repositoryRestaurant import RestaurantRepository
from lunch_order_client.repositories.pg_repositoryUser import UserRepository

logger = logging.getLogger(__name__)


class SqlGroupGateway(GroupGateway):
    """Шлюз поверх SQLAlchemy: PostgreSQL (asyncpg) в проде, SQLite (aiosqlite) в тестах."""

    def __init__(
        self,
        engine: AsyncEngine,
        group_repo: GroupRepository,
        restaurant_repo: RestaurantRepository,
        user_repo: UserRepository,
    ):
        self._engine = engine
        self.group_repo = group_repo
        self.restaurant_repo = restaurant_repo
        self.user_repo = user_repo

    async def check_connection(self) -> None:
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            raise DatabaseError(f"Database is unreachable: {e}") from e

    async def aclose(self) -> None:
        await self._engine.dispose()

    async def list_groups(self) -> List[Group]:
        return await self.group_repo.list_groups()

    async def create_group(self, payload: GroupCreate) -> Group:
        return await self.group_repo.create_group(payload)

    async def join_group(self, payload: GroupJoin) -> Group:
        return await self.group_repo.join_group(payload)

    async def leave_group(self, payload: GroupLeave) -> Group:
        return await self.group_repo.leave_group(payload)

    async def apply_dish_delta(self, payload: DishDelta) -> Group:
        return await self.group_repo.apply_dish_delta(payload)

    async def submit_group(self, payload: GroupSubmit) -> Group:
        return await self.group_repo.submit_group(payload)

    async def delete_group(self, group_id: str) -> None:
        await self.group_repo.delete_group(group_id)

    async def list_restaurants_with_menus(self) -> ReferenceData:
        return await self.restaurant_repo.list_with_menus()

    async def list_users(self) -> Dict[str, str]:
        return await self.user_repo.list_usernames()

    async def replace_member_details(self, group_id: str, details: List[MemberDetail]) -> Group:
        return await self.group_repo.replace_member_details(group_id, details)

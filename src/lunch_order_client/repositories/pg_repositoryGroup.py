# Файл: lunch_order_client/repositories/pg_repositoryGroup.py

import logging
from datetime import timezone
from uuid import uuid4
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from lunch_order_client.db import GroupORM, GroupMemberORM, GroupDishORM
from lunch_order_client.db.base import utcnow
from lunch_order_client.exceptions import DatabaseError, NotFoundError, PermissionDeniedError
from lunch_order_client.models import (DishDelta, Group, GroupCreate, GroupJoin, GroupLeave,
                                       GroupSubmit, MemberDetail)
from lunch_order_client.repositories.pg_repositoryUser import stage_user

logger = logging.getLogger(__name__)


def _aware(value):
    # SQLite возвращает naive datetime
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_model(orm: GroupORM) -> Group:
    """ORM-граф группы -> неизменяемый снимок Group."""
    members = sorted(orm.members, key=lambda m: m.position)
    dishes: dict[str, dict[str, int]] = {}
    for row in orm.dishes:
        if row.qty > 0:
            dishes.setdefault(row.user_id, {})[row.dish_id] = row.qty
    return Group(
        id=orm.id,
        name=orm.name,
        restaurant_id=orm.restaurant_id,
        owner_id=orm.owner_id,
        members=[m.user_id for m in members],
        member_details=[MemberDetail(id=m.user_id, name=m.display_name) for m in members],
        dishes=dishes,
        deadline_at=_aware(orm.deadline_at),
        submitted_at=_aware(orm.submitted_at),
        created_at=_aware(orm.created_at),
    )


class GroupRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def _query(group_id: Optional[str] = None, for_update: bool = False):
        query = select(GroupORM).options(selectinload(GroupORM.members), selectinload(GroupORM.dishes))
        if group_id is not None:
            query = query.where(GroupORM.id == group_id)
        if for_update:
            # На PostgreSQL сериализует дельты по одной группе; SQLite игнорирует
            query = query.with_for_update(of=GroupORM)
        return query

    async def _load(self, session: AsyncSession, group_id: str, for_update: bool = False) -> GroupORM:
        result = await session.execute(self._query(group_id, for_update))
        group = result.scalar_one_or_none()
        if group is None:
            raise NotFoundError(f"Group with id {group_id} not found.")
        return group

    async def _reload(self, session: AsyncSession, group_id: str) -> Group:
        # Свежий identity map: перечитываем граф после commit
        session.expunge_all()
        return to_model(await self._load(session, group_id))

    async def list_groups(self) -> List[Group]:
        """Все группы, новые первыми."""
        async with self._session_factory() as session:
            try:
                result = await session.execute(self._query().order_by(GroupORM.created_at.desc()))
                return [to_model(g) for g in result.scalars().all()]
            except SQLAlchemyError as e:
                raise DatabaseError(f"Failed to list groups: {e}") from e

    async def create_group(self, payload: GroupCreate) -> Group:
        """Создает группу; владелец становится первым участником."""
        group_id = uuid4().hex
        new_group = GroupORM(
            id=group_id,
            name=payload.name,
            restaurant_id=payload.restaurant_id,
            owner_id=payload.owner_id,
            deadline_at=payload.deadline_at,
            created_at=utcnow(),
        )
        new_group.members.append(
            GroupMemberORM(user_id=payload.owner_id, position=0, display_name=payload.owner_name or "")
        )
        async with self._session_factory() as session:
            try:
                session.add(new_group)
                await stage_user(session, payload.owner_id, payload.owner_name or "")
                await session.commit()
                logger.info(f"Created group '{payload.name}' with id {group_id}")
                return await self._reload(session, group_id)
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to create group: {e}") from e

    async def join_group(self, payload: GroupJoin) -> Group:
        async with self._session_factory() as session:
            try:
                group = await self._load(session, payload.group_id, for_update=True)
                member = next((m for m in group.members if m.user_id == payload.user_id), None)
                if member is None:
                    position = max((m.position for m in group.members), default=-1) + 1
                    group.members.append(GroupMemberORM(
                        user_id=payload.user_id, position=position, display_name=payload.username or ""
                    ))
                elif not member.display_name and payload.username:
                    member.display_name = payload.username
                else:
                    logger.warning(f"User {payload.user_id} is already in group {payload.group_id}")
                await stage_user(session, payload.user_id, payload.username or "")
                await session.commit()
                return await self._reload(session, payload.group_id)
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to join group: {e}") from e

    async def leave_group(self, payload: GroupLeave) -> Group:
        async with self._session_factory() as session:
            try:
                group = await self._load(session, payload.group_id, for_update=True)
                if group.owner_id == payload.user_id:
                    raise PermissionDeniedError("Owner cannot leave their own group.")
                member = next((m for m in group.members if m.user_id == payload.user_id), None)
                if member is None:
                    raise NotFoundError(f"User {payload.user_id} is not a member of group {payload.group_id}.")
                # Выборы блюд ушедшего участника не удаляются
                group.members.remove(member)
                await session.commit()
                logger.info(f"Removed user {payload.user_id} from group {payload.group_id}")
                return await self._reload(session, payload.group_id)
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to leave group: {e}") from e

    async def apply_dish_delta(self, payload: DishDelta) -> Group:
        """Прибавляет дельту к количеству; результат <= 0 удаляет строку."""
        async with self._session_factory() as session:
            try:
                group = await self._load(session, payload.group_id, for_update=True)
                row = next(
                    (d for d in group.dishes if d.user_id == payload.user_id and d.dish_id == payload.dish_id),
                    None,
                )
                new_qty = (row.qty if row else 0) + payload.qty
                if new_qty > 0:
                    if row is None:
                        group.dishes.append(GroupDishORM(
                            user_id=payload.user_id, dish_id=payload.dish_id, qty=new_qty
                        ))
                    else:
                        row.qty = new_qty
                elif row is not None:
                    group.dishes.remove(row)
                await session.commit()
                return await self._reload(session, payload.group_id)
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to apply dish delta: {e}") from e

    async def submit_group(self, payload: GroupSubmit) -> Group:
        async with self._session_factory() as session:
            try:
                group = await self._load(session, payload.group_id, for_update=True)
                if group.owner_id != payload.user_id:
                    raise PermissionDeniedError("Only owner can submit.")
                group.submitted_at = payload.submitted_at
                await session.commit()
                logger.info(f"Group {payload.group_id} submitted by {payload.user_id}")
                return await self._reload(session, payload.group_id)
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to submit group: {e}") from e

    async def delete_group(self, group_id: str) -> None:
        async with self._session_factory() as session:
            try:
                group = await self._load(session, group_id)
                await session.delete(group)
                await session.commit()
                logger.info(f"Deleted group {group_id}")
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to delete group: {e}") from e

    async def replace_member_details(self, group_id: str, details: List[MemberDetail]) -> Group:
        names = {d.id: d.name for d in details}
        async with self._session_factory() as session:
            try:
                group = await self._load(session, group_id, for_update=True)
                for member in group.members:
                    if member.user_id in names:
                        member.display_name = names[member.user_id]
                await session.commit()
                return await self._reload(session, group_id)
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to update member details: {e}") from e

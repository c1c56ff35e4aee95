# Файл: lunch_order_client/repositories/memory_repository.py

import asyncio
import logging
from uuid import uuid4
from typing import Dict, Iterable, List, Optional

from lunch_order_client.db.base import utcnow
from lunch_order_client.exceptions import NotFoundError, PermissionDeniedError
from lunch_order_client.models import (DishDelta, Group, GroupCreate, GroupJoin, GroupLeave,
                                       GroupSubmit, MemberDetail, ReferenceData)
from lunch_order_client.repositories.gateway import GroupGateway, apply_delta, upsert_detail

logger = logging.getLogger(__name__)


class InMemoryGateway(GroupGateway):
    """
    Локальное хранилище в памяти процесса. Используется в тестах и как
    офлайн-замена серверному API. latency имитирует сетевую задержку.
    """

    def __init__(
        self,
        reference: Optional[ReferenceData] = None,
        users: Optional[Dict[str, str]] = None,
        groups: Iterable[Group] = (),
        latency: float = 0.0,
    ):
        self._reference = reference or ReferenceData()
        self._users: Dict[str, str] = dict(users or {})
        # Новые группы в начале списка
        self._order: List[str] = []
        self._groups: Dict[str, Group] = {}
        for group in groups:
            self._order.append(group.id)
            self._groups[group.id] = group
        self._latency = latency

    async def _tick(self) -> None:
        await asyncio.sleep(self._latency)

    def _get(self, group_id: str) -> Group:
        group = self._groups.get(group_id)
        if group is None:
            raise NotFoundError(f"Group with id {group_id} not found.")
        return group

    def _put(self, group: Group) -> Group:
        self._groups[group.id] = group
        return group

    async def list_groups(self) -> List[Group]:
        await self._tick()
        return [self._groups[group_id] for group_id in self._order]

    async def create_group(self, payload: GroupCreate) -> Group:
        await self._tick()
        group = Group(
            id=uuid4().hex,
            name=payload.name,
            restaurant_id=payload.restaurant_id,
            owner_id=payload.owner_id,
            members=[payload.owner_id],
            member_details=[MemberDetail(id=payload.owner_id, name=payload.owner_name or "")],
            dishes={},
            deadline_at=payload.deadline_at,
            submitted_at=None,
            created_at=utcnow(),
        )
        self._order.insert(0, group.id)
        return self._put(group)

    async def join_group(self, payload: GroupJoin) -> Group:
        await self._tick()
        group = self._get(payload.group_id)
        members = list(group.members)
        if payload.user_id not in members:
            members.append(payload.user_id)
        details = upsert_detail(group.member_details, payload.user_id, payload.username or "")
        if payload.username and not self._users.get(payload.user_id):
            self._users[payload.user_id] = payload.username
        return self._put(group.model_copy(update={"members": members, "member_details": details}))

    async def leave_group(self, payload: GroupLeave) -> Group:
        await self._tick()
        group = self._get(payload.group_id)
        if group.owner_id == payload.user_id:
            raise PermissionDeniedError("Owner cannot leave their own group.")
        if payload.user_id not in group.members:
            raise NotFoundError(f"User {payload.user_id} is not a member of group {payload.group_id}.")
        members = [m for m in group.members if m != payload.user_id]
        details = [d for d in group.member_details if d.id != payload.user_id]
        return self._put(group.model_copy(update={"members": members, "member_details": details}))

    async def apply_dish_delta(self, payload: DishDelta) -> Group:
        await self._tick()
        group = self._get(payload.group_id)
        dishes = apply_delta(group.dishes, payload.user_id, payload.dish_id, payload.qty)
        return self._put(group.model_copy(update={"dishes": dishes}))

    async def submit_group(self, payload: GroupSubmit) -> Group:
        await self._tick()
        group = self._get(payload.group_id)
        if group.owner_id != payload.user_id:
            raise PermissionDeniedError("Only owner can submit.")
        return self._put(group.model_copy(update={"submitted_at": payload.submitted_at}))

    async def delete_group(self, group_id: str) -> None:
        await self._tick()
        self._get(group_id)
        del self._groups[group_id]
        self._order.remove(group_id)

    async def list_restaurants_with_menus(self) -> ReferenceData:
        await self._tick()
        return self._reference

    async def list_users(self) -> Dict[str, str]:
        await self._tick()
        return dict(self._users)

    async def replace_member_details(self, group_id: str, details: List[MemberDetail]) -> Group:
        await self._tick()
        group = self._get(group_id)
        return self._put(group.model_copy(update={"member_details": list(details)}))

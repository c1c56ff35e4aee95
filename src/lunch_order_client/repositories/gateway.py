# Файл: lunch_order_client/repositories/gateway.py

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Dict, List

from lunch_order_client.models import (DishDelta, DishesMap, Group, GroupCreate, GroupJoin,
                                       GroupLeave, GroupSubmit, MemberDetail, ReferenceData)


class GroupGateway(ABC):
    """
    Контракт хранилища групп. Каждая мутирующая операция возвращает
    каноническую группу после изменения или поднимает исключение, ничего не изменив.
    """

    @abstractmethod
    async def list_groups(self) -> List[Group]: ...

    @abstractmethod
    async def create_group(self, payload: GroupCreate) -> Group: ...

    @abstractmethod
    async def join_group(self, payload: GroupJoin) -> Group: ...

    @abstractmethod
    async def leave_group(self, payload: GroupLeave) -> Group: ...

    @abstractmethod
    async def apply_dish_delta(self, payload: DishDelta) -> Group: ...

    @abstractmethod
    async def submit_group(self, payload: GroupSubmit) -> Group: ...

    @abstractmethod
    async def delete_group(self, group_id: str) -> None: ...

    @abstractmethod
    async def list_restaurants_with_menus(self) -> ReferenceData: ...

    @abstractmethod
    async def list_users(self) -> Dict[str, str]: ...

    @abstractmethod
    async def replace_member_details(self, group_id: str, details: List[MemberDetail]) -> Group: ...

    async def check_connection(self) -> None:
        return None

    async def aclose(self) -> None:
        return None


# --- Общие правила, которые обязаны соблюдать все реализации ---

def apply_delta(dishes: DishesMap, user_id: str, dish_id: str, qty: int) -> DishesMap:
    """Новая карта блюд после дельты; qty <= 0 в результате убирает ключ."""
    updated = {uid: dict(by_dish) for uid, by_dish in dishes.items()}
    mine = updated.get(user_id, {})
    new_qty = mine.get(dish_id, 0) + qty
    if new_qty > 0:
        mine[dish_id] = new_qty
    else:
        mine.pop(dish_id, None)
    if mine:
        updated[user_id] = mine
    else:
        updated.pop(user_id, None)
    return updated


def upsert_detail(details: List[MemberDetail], user_id: str, name: str) -> List[MemberDetail]:
    """Добавляет запись участника или заполняет пустое имя. Непустое имя не трогает."""
    result = []
    found = False
    for detail in details:
        if detail.id == user_id:
            found = True
            if not detail.name and name:
                detail = MemberDetail(id=user_id, name=name)
        result.append(detail)
    if not found:
        result.append(MemberDetail(id=user_id, name=name))
    return result

# Файл: lunch_order_client/models/group.py

from __future__ import annotations
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

# Количества блюд: member_id -> dish_id -> qty (> 0)
DishesMap = Dict[str, Dict[str, int]]


class Identity(BaseModel):
    """Текущий пользователь сессии."""
    id: str
    username: str | None = None

    model_config = ConfigDict(frozen=True)


class MemberDetail(BaseModel):
    id: str
    name: str = ""

    model_config = ConfigDict(frozen=True, from_attributes=True)


class Member(BaseModel):
    """Производное представление участника для отрисовки."""
    id: str
    name: str
    initial: str

    model_config = ConfigDict(frozen=True)


# Схема для создания новой группы
class GroupCreate(BaseModel):
    name: str
    restaurant_id: str
    owner_id: str
    owner_name: str | None = None
    deadline_at: datetime


class GroupJoin(BaseModel):
    group_id: str
    user_id: str
    username: str | None = None


class GroupLeave(BaseModel):
    group_id: str
    user_id: str


class DishDelta(BaseModel):
    group_id: str
    user_id: str
    dish_id: str
    qty: int


class GroupSubmit(BaseModel):
    group_id: str
    user_id: str
    submitted_at: datetime


# Каноническая группа. Снимки неизменяемы: стор заменяет их целиком.
class Group(BaseModel):
    id: str
    name: str
    restaurant_id: str
    owner_id: str
    members: List[str] = Field(default_factory=list)
    member_details: List[MemberDetail] = Field(default_factory=list)
    dishes: DishesMap = Field(default_factory=dict)
    deadline_at: datetime
    submitted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)

    def is_member(self, user_id: str) -> bool:
        return user_id in self.members

    def is_owner(self, user_id: str) -> bool:
        return self.owner_id == user_id

    @property
    def is_submitted(self) -> bool:
        return self.submitted_at is not None

    def detail_name(self, user_id: str) -> str | None:
        for detail in self.member_details:
            if detail.id == user_id:
                return detail.name or None
        return None

    def saved_qty(self, user_id: str, dish_id: str) -> int:
        return self.dishes.get(user_id, {}).get(dish_id, 0)

# lunch_order_client/db/__init__.py

from .base import Base, session_scope

from .users.user_orm import UserORM
from .restaurants.restaurant_orm import RestaurantORM, DishORM
from .groups.group_orm import GroupORM, GroupMemberORM, GroupDishORM


__all__ = [
    "Base",
    "session_scope",
    "UserORM",
    "RestaurantORM",
    "DishORM",
    "GroupORM",
    "GroupMemberORM",
    "GroupDishORM",
]

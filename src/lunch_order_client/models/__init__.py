from .group import (Group, GroupCreate, GroupJoin, GroupLeave, GroupSubmit, DishDelta,
                    DishesMap, Identity, Member, MemberDetail)
from .restaurant import Dish, Restaurant, RestaurantWithMenu, ReferenceData
from .picks import Countdown, DishPicks, PickContributor

__all__ = [
    "Group", "GroupCreate", "GroupJoin", "GroupLeave", "GroupSubmit", "DishDelta",
    "DishesMap", "Identity", "Member", "MemberDetail",
    "Dish", "Restaurant", "RestaurantWithMenu", "ReferenceData",
    "Countdown", "DishPicks", "PickContributor",
]

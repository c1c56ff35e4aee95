from __future__ import annotations
from typing import Dict, List
from pydantic import BaseModel, ConfigDict, Field


class Dish(BaseModel):
    id: str
    name: str
    price: float = 0.0

    model_config = ConfigDict(frozen=True, from_attributes=True)


class Restaurant(BaseModel):
    id: str
    name: str
    address: str | None = None

    model_config = ConfigDict(frozen=True, from_attributes=True)


class RestaurantWithMenu(Restaurant):
    dishes: List[Dish] = Field(default_factory=list)


class ReferenceData(BaseModel):
    """Справочники: рестораны и меню по restaurant_id."""
    restaurants: List[Restaurant] = Field(default_factory=list)
    menu_map: Dict[str, List[Dish]] = Field(default_factory=dict)

    def restaurant(self, restaurant_id: str) -> Restaurant | None:
        return next((r for r in self.restaurants if r.id == restaurant_id), None)

    def menu(self, restaurant_id: str) -> List[Dish]:
        return self.menu_map.get(restaurant_id, [])

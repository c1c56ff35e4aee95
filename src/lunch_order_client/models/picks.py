from __future__ import annotations
from typing import List
from pydantic import BaseModel, ConfigDict


class Countdown(BaseModel):
    open: bool
    minutes_left: int
    seconds_left: int
    remaining_ms: int = 0

    model_config = ConfigDict(frozen=True)


class PickContributor(BaseModel):
    user_id: str
    name: str
    qty: int

    model_config = ConfigDict(frozen=True)


# Строка сводки "по блюдам"; только для отрисовки, не сохраняется
class DishPicks(BaseModel):
    dish_id: str
    name: str
    price: float
    total: int
    by: List[PickContributor]

    model_config = ConfigDict(frozen=True)

from __future__ import annotations
from typing import Dict, Iterable, Mapping

from lunch_order_client.exceptions import ValidationError
from lunch_order_client.models.restaurant import Dish


class LocalSelection:
    """
    Несохранённые количества блюд текущего зрителя. Живёт только в сессии.

    Ноль хранится явно: так локальное "поставить 0" гасит ранее сохранённый
    выбор в превью и превращается в отрицательную дельту при сохранении.
    """

    def __init__(self, initial: Mapping[str, int] | None = None):
        self._qty: Dict[str, int] = {}
        for dish_id, qty in (initial or {}).items():
            self.set_qty(dish_id, qty)

    def set_qty(self, dish_id: str, qty: int) -> None:
        if not dish_id:
            raise ValidationError("Dish id must not be empty.")
        if isinstance(qty, bool) or not isinstance(qty, int):
            raise ValidationError(f"Quantity must be an integer, got {qty!r}.")
        self._qty[dish_id] = max(0, qty)

    def reset(self) -> None:
        self._qty.clear()

    def as_dict(self) -> Dict[str, int]:
        return dict(self._qty)

    def __len__(self) -> int:
        return len(self._qty)

    def __bool__(self) -> bool:
        return bool(self._qty)

    def total_price(self, catalog: Iterable[Dish]) -> float:
        prices = {dish.id: dish.price for dish in catalog}
        return sum(prices.get(dish_id, 0.0) * qty for dish_id, qty in self._qty.items())

    def deltas_against(self, saved: Mapping[str, int]) -> Dict[str, int]:
        """Дельты (желаемое - сохранённое) по блюдам с ненулевой разницей."""
        deltas = {}
        for dish_id, qty in self._qty.items():
            delta = qty - saved.get(dish_id, 0)
            if delta != 0:
                deltas[dish_id] = delta
        return deltas

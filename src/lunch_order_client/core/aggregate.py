from __future__ import annotations
from typing import Callable, Iterable, List

from lunch_order_client.core.merge import MergedPicks
from lunch_order_client.models.picks import DishPicks, PickContributor
from lunch_order_client.models.restaurant import Dish


def _name_key(name: str) -> str:
    return name.casefold()


def summarize_by_dish(
    merged_picks: MergedPicks,
    dish_catalog: Iterable[Dish],
    name_resolver: Callable[[str], str],
) -> List[DishPicks]:
    """
    Сводит выборы всех участников в строки по блюдам.

    Неизвестный dish_id не ломает сводку: имя "#<id>", цена 0.
    Строки: total по убыванию, затем имя. Участники внутри строки: имя, затем id.
    """
    catalog = {dish.id: dish for dish in dish_catalog}
    totals: dict[str, int] = {}
    contributors: dict[str, list[PickContributor]] = {}

    for user_id, by_dish in merged_picks.items():
        for dish_id, qty in (by_dish or {}).items():
            if not qty or qty <= 0:
                continue
            totals[dish_id] = totals.get(dish_id, 0) + qty
            contributors.setdefault(dish_id, []).append(
                PickContributor(user_id=user_id, name=name_resolver(user_id), qty=qty)
            )

    rows = []
    for dish_id, total in totals.items():
        meta = catalog.get(dish_id)
        by = sorted(contributors[dish_id], key=lambda c: (_name_key(c.name), c.user_id))
        rows.append(DishPicks(
            dish_id=dish_id,
            name=meta.name if meta else f"#{dish_id}",
            price=meta.price if meta else 0.0,
            total=total,
            by=by,
        ))

    rows.sort(key=lambda r: (-r.total, _name_key(r.name), r.dish_id))
    return rows

from __future__ import annotations
from types import MappingProxyType
from typing import Mapping

# Только для чтения: member_id -> dish_id -> qty
MergedPicks = Mapping[str, Mapping[str, int]]


def _freeze(picks: dict[str, dict[str, int]]) -> MergedPicks:
    return MappingProxyType({
        user_id: MappingProxyType(dict(by_dish))
        for user_id, by_dish in picks.items()
        if by_dish
    })


def merge_selections(
    group_dishes: Mapping[str, Mapping[str, int]],
    local_selections: Mapping[str, int],
    viewer_id: str,
    is_member: bool,
) -> MergedPicks:
    """
    Накладывает несохранённые локальные количества зрителя на сохранённое
    состояние группы.

    - Входные структуры не изменяются, результат их не разделяет.
    - Локальные выборы не-участника не попадают в результат.
    - qty > 0 перезаписывает значение, qty <= 0 убирает блюдо из превью.
    """
    base = {user_id: dict(by_dish) for user_id, by_dish in group_dishes.items()}
    if is_member and local_selections:
        mine = base.setdefault(viewer_id, {})
        for dish_id, qty in local_selections.items():
            if qty > 0:
                mine[dish_id] = qty
            else:
                mine.pop(dish_id, None)
    return _freeze(base)


def restrict_to_members(picks: MergedPicks, members: list[str]) -> MergedPicks:
    """Отбрасывает выборы ушедших участников."""
    allowed = set(members)
    return MappingProxyType({user_id: by_dish for user_id, by_dish in picks.items() if user_id in allowed})


def to_plain(picks: MergedPicks) -> dict[str, dict[str, int]]:
    return {user_id: dict(by_dish) for user_id, by_dish in picks.items()}

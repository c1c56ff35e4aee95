from __future__ import annotations
from datetime import datetime
from typing import List, Mapping, Sequence

from pydantic import BaseModel, ConfigDict

from lunch_order_client.core.aggregate import summarize_by_dish
from lunch_order_client.core.countdown import countdown
from lunch_order_client.core.members import member_list, resolve_display_name
from lunch_order_client.core.merge import MergedPicks, merge_selections, restrict_to_members, to_plain
from lunch_order_client.models import Countdown, Dish, DishPicks, Group, Identity, Member


class GroupView(BaseModel):
    """Модель представления для слоя отрисовки. Только для чтения."""
    group: Group
    merged_picks: dict[str, dict[str, int]]
    picks_by_dish: List[DishPicks]
    countdown: Countdown
    members: List[Member]
    is_owner: bool
    is_member: bool
    can_edit: bool
    can_submit: bool
    selection_total: float

    model_config = ConfigDict(frozen=True)


def build_group_view(
    group: Group,
    viewer: Identity,
    now: datetime,
    catalog: Sequence[Dish] = (),
    selections: Mapping[str, int] | None = None,
    directory: Mapping[str, str] | None = None,
    count_departed_selections: bool = True,
) -> GroupView:
    is_member = group.is_member(viewer.id)
    is_owner = group.is_owner(viewer.id)
    cd = countdown(group.deadline_at, now)

    merged: MergedPicks = merge_selections(group.dishes, selections or {}, viewer.id, is_member)
    if not count_departed_selections:
        merged = restrict_to_members(merged, group.members)

    rows = summarize_by_dish(
        merged,
        catalog,
        lambda user_id: resolve_display_name(user_id, group, directory, viewer),
    )
    prices = {dish.id: dish.price for dish in catalog}
    selection_total = sum(prices.get(d, 0.0) * q for d, q in (selections or {}).items() if q > 0)
    still_open = cd.open and not group.is_submitted

    return GroupView(
        group=group,
        merged_picks=to_plain(merged),
        picks_by_dish=rows,
        countdown=cd,
        members=member_list(group, directory, viewer),
        is_owner=is_owner,
        is_member=is_member,
        can_edit=is_member and still_open,
        can_submit=is_owner and still_open,
        selection_total=selection_total,
    )

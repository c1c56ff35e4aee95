from datetime import timedelta

from lunch_order_client.core import build_group_view
from lunch_order_client.models import Dish, Group, Identity, MemberDetail
from conftest import T0

CATALOG = [Dish(id="d1", name="Fish Amok", price=5.5), Dish(id="d2", name="Beef Lok Lak", price=6.0)]


def make_group(**overrides) -> Group:
    data = dict(
        id="g1", name="Lunch", restaurant_id="kh01", owner_id="o",
        members=["o", "m"],
        member_details=[MemberDetail(id="o", name="Olga"), MemberDetail(id="m", name="Max")],
        dishes={"o": {"d1": 1}, "m": {"d1": 2}, "gone": {"d2": 4}},
        deadline_at=T0 + timedelta(minutes=30),
    )
    data.update(overrides)
    return Group(**data)


def test_member_preview_includes_unsaved_edits():
    view = build_group_view(make_group(), Identity(id="m"), T0, CATALOG, selections={"d1": 0, "d2": 1})

    assert view.merged_picks["m"] == {"d2": 1}
    totals = {r.dish_id: r.total for r in view.picks_by_dish}
    assert totals == {"d2": 5, "d1": 1}
    assert view.selection_total == 6.0
    assert view.is_member and not view.is_owner
    assert view.can_edit and not view.can_submit


def test_departed_selections_policy():
    group = make_group()
    counted = build_group_view(group, Identity(id="o"), T0, CATALOG)
    dropped = build_group_view(group, Identity(id="o"), T0, CATALOG, count_departed_selections=False)

    assert "gone" in counted.merged_picks
    assert "gone" not in dropped.merged_picks
    assert [r.dish_id for r in dropped.picks_by_dish] == ["d1"]


def test_non_member_preview_is_isolated():
    view = build_group_view(make_group(), Identity(id="visitor"), T0, CATALOG, selections={"d1": 9})
    assert "visitor" not in view.merged_picks
    assert not view.can_edit and not view.can_submit


def test_closed_after_deadline():
    view = build_group_view(make_group(), Identity(id="o"), T0 + timedelta(hours=1), CATALOG)
    assert view.countdown.open is False
    assert not view.can_edit and not view.can_submit
    assert [m.name for m in view.members] == ["Olga", "Max"]

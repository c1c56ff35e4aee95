from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from lunch_order_client import GroupStore
from lunch_order_client.exceptions import DatabaseError, NotFoundError, PermissionDeniedError
from lunch_order_client.repositories import pg_repositoryGroup
from lunch_order_client.models import DishDelta, GroupCreate, GroupJoin, GroupLeave, GroupSubmit, Identity, MemberDetail
from lunch_order_client.utils.cli_utils import load_restaurants

pytestmark = pytest.mark.asyncio

DEADLINE = datetime.now(timezone.utc) + timedelta(hours=1)


async def create(gateway, name="Lunch"):
    return await gateway.create_group(GroupCreate(
        name=name, restaurant_id="kh01", owner_id="u1", owner_name="Alice", deadline_at=DEADLINE,
    ))


async def test_reference_data_is_seeded(sql_gateway):
    reference = await sql_gateway.list_restaurants_with_menus()
    assert [r.id for r in reference.restaurants] == ["kh01", "kh02", "kh03"]
    assert [d.id for d in reference.menu("kh01")] == ["d101", "d102", "d103"]
    # Повторная загрузка перезаписывает меню, а не дублирует его
    await sql_gateway.restaurant_repo.upsert_many(load_restaurants())
    again = await sql_gateway.list_restaurants_with_menus()
    assert len(again.menu("kh01")) == 3


async def test_group_lifecycle(sql_gateway):
    group = await create(sql_gateway)
    assert group.members == ["u1"]
    assert group.member_details == [MemberDetail(id="u1", name="Alice")]
    assert group.deadline_at.tzinfo is not None

    group = await sql_gateway.join_group(GroupJoin(group_id=group.id, user_id="u2", username="Bob"))
    group = await sql_gateway.join_group(GroupJoin(group_id=group.id, user_id="u2", username="Robert"))
    assert group.members == ["u1", "u2"]
    assert group.detail_name("u2") == "Bob"

    group = await sql_gateway.apply_dish_delta(DishDelta(group_id=group.id, user_id="u2", dish_id="d101", qty=2))
    group = await sql_gateway.apply_dish_delta(DishDelta(group_id=group.id, user_id="u2", dish_id="d101", qty=3))
    assert group.dishes == {"u2": {"d101": 5}}
    group = await sql_gateway.apply_dish_delta(DishDelta(group_id=group.id, user_id="u2", dish_id="d101", qty=-9))
    assert group.dishes == {}

    await sql_gateway.apply_dish_delta(DishDelta(group_id=group.id, user_id="u2", dish_id="d102", qty=1))
    group = await sql_gateway.leave_group(GroupLeave(group_id=group.id, user_id="u2"))
    assert group.members == ["u1"]
    assert group.dishes == {"u2": {"d102": 1}}

    with pytest.raises(PermissionDeniedError):
        await sql_gateway.submit_group(GroupSubmit(group_id=group.id, user_id="u2", submitted_at=DEADLINE))
    group = await sql_gateway.submit_group(GroupSubmit(group_id=group.id, user_id="u1", submitted_at=DEADLINE))
    assert group.submitted_at == DEADLINE

    assert await sql_gateway.list_users() == {"u1": "Alice", "u2": "Bob"}

    await sql_gateway.delete_group(group.id)
    assert await sql_gateway.list_groups() == []
    with pytest.raises(NotFoundError):
        await sql_gateway.delete_group(group.id)


async def test_owner_cannot_leave_and_unknown_group(sql_gateway):
    group = await create(sql_gateway)
    with pytest.raises(PermissionDeniedError):
        await sql_gateway.leave_group(GroupLeave(group_id=group.id, user_id="u1"))
    with pytest.raises(NotFoundError):
        await sql_gateway.join_group(GroupJoin(group_id="missing", user_id="u2"))
    with pytest.raises(NotFoundError):
        await sql_gateway.apply_dish_delta(DishDelta(group_id="missing", user_id="u2", dish_id="d1", qty=1))


async def test_list_groups_newest_first(sql_gateway):
    first = await create(sql_gateway, "first")
    second = await create(sql_gateway, "second")
    assert [g.id for g in await sql_gateway.list_groups()] == [second.id, first.id]


async def test_store_over_sql_gateway(sql_gateway):
    store = GroupStore(sql_gateway)
    assert await store.bootstrap()
    group = await store.create_group("Lunch", "kh01", "u1", DEADLINE, owner_name="Alice")
    await store.join_group(group.id, "u2", "Bob")
    await store.add_dish(group.id, "u2", "d101", 2)

    reloaded = GroupStore(sql_gateway)
    await reloaded.bootstrap()
    assert reloaded.get_group(group.id).dishes == {"u2": {"d101": 2}}
    assert reloaded.directory == {"u1": "Alice", "u2": "Bob"}
    assert [r.name for r in reloaded.view(group.id, Identity(id="u1")).picks_by_dish] == ["Fish Amok"]


async def test_failed_user_write_rolls_back_group_write(sql_gateway, monkeypatch):
    group = await create(sql_gateway)

    async def broken_stage_user(session, user_id, username):
        raise OperationalError("INSERT INTO users", {}, Exception("disk I/O error"))

    monkeypatch.setattr(pg_repositoryGroup, "stage_user", broken_stage_user)
    store = GroupStore(sql_gateway)
    await store.bootstrap()

    with pytest.raises(DatabaseError):
        await store.create_group("Second", "kh01", "u9", DEADLINE, owner_name="Nina")
    assert [g.id for g in store.groups] == [group.id]
    assert [g.id for g in await sql_gateway.list_groups()] == [group.id]

    with pytest.raises(DatabaseError):
        await store.join_group(group.id, "u2", "Bob")
    assert (await sql_gateway.list_groups())[0].members == ["u1"]
    assert await sql_gateway.list_users() == {"u1": "Alice"}

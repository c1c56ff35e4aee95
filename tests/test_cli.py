import asyncio
import re
import sys
from datetime import datetime, timedelta, timezone

import pytest
from typer.testing import CliRunner

if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from lunch_order_client import create_sql_gateway
from lunch_order_client.cli import app
from lunch_order_client.config import DatabaseConfig
from lunch_order_client.models import DishDelta, GroupCreate, GroupJoin

runner = CliRunner()


def _make_group(dsn: str, owner_name: str = "Alice") -> str:
    async def _go():
        gateway = create_sql_gateway(DatabaseConfig(dsn=dsn))
        try:
            group = await gateway.create_group(GroupCreate(
                name="Friday lunch", restaurant_id="kh01", owner_id="u1", owner_name=owner_name,
                deadline_at=datetime.now(timezone.utc) + timedelta(hours=1),
            ))
            await gateway.join_group(GroupJoin(group_id=group.id, user_id="u2", username="Bob"))
            await gateway.apply_dish_delta(DishDelta(group_id=group.id, user_id="u2", dish_id="d101", qty=2))
            return group.id
        finally:
            await gateway.aclose()
    return asyncio.run(_go())


@pytest.fixture
def initialized(sqlite_dsn):
    result_init = runner.invoke(app, ["init", "--dsn", sqlite_dsn])
    assert result_init.exit_code == 0, f"Команда 'init' провалилась: {result_init.output}"
    assert "Database tables created successfully" in result_init.output

    result_seed = runner.invoke(app, ["seed", "--dsn", sqlite_dsn])
    assert result_seed.exit_code == 0, result_seed.output
    assert "Seeded 3 restaurants" in result_seed.output
    return sqlite_dsn


def test_cli_check(initialized):
    result = runner.invoke(app, ["check", "--dsn", initialized])
    assert result.exit_code == 0
    assert "Database connection: OK" in result.output


def test_cli_groups_and_summary(initialized):
    group_id = _make_group(initialized)

    result_groups = runner.invoke(app, ["groups", "--dsn", initialized])
    assert result_groups.exit_code == 0, result_groups.output
    assert "Friday" in result_groups.output
    assert group_id in result_groups.output
    # id из таблицы годится для следующей команды
    listed_id = re.search(r"\b[0-9a-f]{32}\b", result_groups.output).group(0)
    assert listed_id == group_id

    result_summary = runner.invoke(app, ["summary", listed_id, "--dsn", initialized])
    assert result_summary.exit_code == 0, result_summary.output
    assert "Fish Amok" in result_summary.output
    assert "Bob" in result_summary.output


def test_cli_summary_unknown_group(initialized):
    result = runner.invoke(app, ["summary", "missing", "--dsn", initialized])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_cli_repair_members(initialized):
    _make_group(initialized, owner_name="")

    dry = runner.invoke(app, ["repair-members", "--dry-run", "--dsn", initialized])
    assert dry.exit_code == 0, dry.output
    assert "1 groups need repair" in dry.output

    result = runner.invoke(app, ["repair-members", "--dsn", initialized])
    assert "1 groups repaired" in result.output
    again = runner.invoke(app, ["repair-members", "--dsn", initialized])
    assert "0 groups repaired" in again.output

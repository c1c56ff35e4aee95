from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from lunch_order_client import GroupStore, create_sql_gateway
from lunch_order_client.config import DatabaseConfig, OrderPolicyConfig
from lunch_order_client.db.base import Base
from lunch_order_client.models import ReferenceData
from lunch_order_client.repositories.memory_repository import InMemoryGateway
from lunch_order_client.utils.cli_utils import load_restaurants

T0 = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Управляемые часы: тесты двигают время вручную."""

    def __init__(self, start: datetime = T0):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def reference() -> ReferenceData:
    restaurants = load_restaurants()
    return ReferenceData(
        restaurants=restaurants,
        menu_map={r.id: list(r.dishes) for r in restaurants},
    )


@pytest.fixture
def gateway(reference) -> InMemoryGateway:
    return InMemoryGateway(reference=reference, users={"u1": "Alice", "u2": "Bob"})


@pytest.fixture
def policy() -> OrderPolicyConfig:
    return OrderPolicyConfig()


@pytest_asyncio.fixture
async def store(gateway, clock, policy):
    """Стор поверх шлюза в памяти, уже загруженный."""
    store = GroupStore(gateway, policy=policy, clock=clock)
    assert await store.bootstrap()
    yield store
    await store.aclose()


@pytest.fixture
def sqlite_dsn(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'lunch.db'}"


@pytest_asyncio.fixture
async def sql_gateway(sqlite_dsn):
    """SQL-шлюз на временном файле SQLite с созданными таблицами и справочником."""
    engine = create_async_engine(sqlite_dsn)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()

    gateway = create_sql_gateway(DatabaseConfig(dsn=sqlite_dsn))
    await gateway.restaurant_repo.upsert_many(load_restaurants())
    yield gateway
    await gateway.aclose()

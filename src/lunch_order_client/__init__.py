# Файл: src/lunch_order_client/__init__.py

from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from .config import get_settings, OrderClientConfig, DatabaseConfig, OrderPolicyConfig
from .store import GroupStore, utc_now
from .core import LocalSelection, GroupView, countdown, merge_selections, summarize_by_dish
from .models import Group, Identity, Dish, Restaurant, ReferenceData, DishPicks, Countdown
from .repositories.gateway import GroupGateway
from .repositories.memory_repository import InMemoryGateway
from .repositories.sql_gateway import SqlGroupGateway
from .repositories.pg_repositoryGroup import GroupRepository
from .repositories.pg_repositoryRestaurant import RestaurantRepository
from .repositories.pg_repositoryUser import UserRepository

from .exceptions import *


def create_sql_gateway(database: DatabaseConfig) -> SqlGroupGateway:
    """Собирает движок, фабрику сессий и репозитории в один шлюз."""
    engine = create_async_engine(database.dsn, **database.engine_kwargs())
    session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)
    return SqlGroupGateway(
        engine=engine,
        group_repo=GroupRepository(session_factory),
        restaurant_repo=RestaurantRepository(session_factory),
        user_repo=UserRepository(session_factory),
    )


def create_group_store(
    config: Optional[OrderClientConfig] = None,
    gateway: Optional[GroupGateway] = None,
    clock=utc_now,
) -> GroupStore:
    """
    Фабрика стора для одной сессии.

    :param config: Единый объект с настройками. Если не передан, читается из окружения.
    :param gateway: Готовый шлюз (например, InMemoryGateway). Иначе строится SQL-шлюз.
    """
    if config is None:
        config = get_settings().to_client_config()
    if gateway is None:
        gateway = create_sql_gateway(config.database)
    return GroupStore(gateway, policy=config.policy, clock=clock)


__all__ = [
    "GroupStore", "create_group_store", "create_sql_gateway",
    "OrderClientConfig", "DatabaseConfig", "OrderPolicyConfig",
    "GroupGateway", "InMemoryGateway", "SqlGroupGateway",
    "LocalSelection", "GroupView", "countdown", "merge_selections", "summarize_by_dish",
    "Group", "Identity", "Dish", "Restaurant", "ReferenceData", "DishPicks", "Countdown",
    "OrderClientError", "NotFoundError", "PermissionDeniedError", "ValidationError",
    "GroupClosedError", "GatewayError", "DatabaseError",
]

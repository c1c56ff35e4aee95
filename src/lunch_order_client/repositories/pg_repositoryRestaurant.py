# Файл: lunch_order_client/repositories/pg_repositoryRestaurant.py

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from lunch_order_client.db import RestaurantORM, DishORM
from lunch_order_client.db.base import session_scope
from lunch_order_client.models import Dish, ReferenceData, Restaurant, RestaurantWithMenu

logger = logging.getLogger(__name__)


class RestaurantRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_with_menus(self) -> ReferenceData:
        """Рестораны и их меню одним запросом (selectinload)."""
        async with session_scope(self._session_factory, "load restaurants") as session:
            query = select(RestaurantORM).options(selectinload(RestaurantORM.dishes)).order_by(RestaurantORM.id)
            restaurants = (await session.execute(query)).scalars().all()
            return ReferenceData(
                restaurants=[Restaurant.model_validate(r) for r in restaurants],
                menu_map={r.id: [Dish.model_validate(d) for d in r.dishes] for r in restaurants},
            )

    async def upsert_many(self, restaurants: List[RestaurantWithMenu]) -> int:
        """Загружает справочник: существующие рестораны перезаписываются вместе с меню."""
        async with session_scope(self._session_factory, "seed restaurants") as session:
            for item in restaurants:
                existing = await session.get(RestaurantORM, item.id, options=[selectinload(RestaurantORM.dishes)])
                if existing is None:
                    existing = RestaurantORM(id=item.id)
                    session.add(existing)
                existing.name = item.name
                existing.address = item.address
                # Старые блюда удаляются до вставки новых с теми же id
                existing.dishes = []
                await session.flush()
                existing.dishes = [
                    DishORM(id=d.id, name=d.name, price=d.price, position=i)
                    for i, d in enumerate(item.dishes)
                ]
            await session.commit()
            logger.info(f"Seeded {len(restaurants)} restaurants")
            return len(restaurants)

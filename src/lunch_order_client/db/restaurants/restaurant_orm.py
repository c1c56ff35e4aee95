from __future__ import annotations
from typing import List, Optional

from sqlalchemy import String, Float, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import Base


class RestaurantORM(Base):
    __tablename__ = "restaurants"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)

    dishes: Mapped[List["DishORM"]] = relationship(
        back_populates="restaurant", cascade="all, delete-orphan", order_by="DishORM.position"
    )


class DishORM(Base):
    __tablename__ = "dishes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    restaurant_id: Mapped[str] = mapped_column(String(64), ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    position: Mapped[int] = mapped_column(default=0)

    restaurant: Mapped["RestaurantORM"] = relationship(back_populates="dishes")

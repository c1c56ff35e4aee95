from __future__ import annotations
from datetime import datetime
from typing import List, Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import Base, CreatedAt


class GroupORM(Base):
    __tablename__ = "groups"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    # Ресторан фиксируется при создании, операции смены нет
    restaurant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    deadline_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[CreatedAt]

    members: Mapped[List["GroupMemberORM"]] = relationship(
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="GroupMemberORM.position",
    )
    dishes: Mapped[List["GroupDishORM"]] = relationship(
        back_populates="group", cascade="all, delete-orphan"
    )


class GroupMemberORM(Base):
    __tablename__ = "group_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group_id: Mapped[str] = mapped_column(String(64), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    # Порядок вступления; владелец всегда 0
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    __table_args__ = (UniqueConstraint("group_id", "user_id", name="uq_group_members_group_user"),)

    group: Mapped["GroupORM"] = relationship(back_populates="members")


class GroupDishORM(Base):
    __tablename__ = "group_dishes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group_id: Mapped[str] = mapped_column(String(64), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False)
    # Без FK на участников: выборы ушедшего участника остаются
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    dish_id: Mapped[str] = mapped_column(String(64), nullable=False)
    qty: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("group_id", "user_id", "dish_id", name="uq_group_dishes_group_user_dish"),
        CheckConstraint("qty > 0", name="qty_positive"),
    )

    group: Mapped["GroupORM"] = relationship(back_populates="dishes")

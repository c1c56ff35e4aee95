from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from ..base import Base, CreatedAt


class UserORM(Base):
    """Справочник пользователей: только id и имя для отображения."""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    created_at: Mapped[CreatedAt]

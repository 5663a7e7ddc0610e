"""SQLAlchemy ORM model for the users table.

Table is created by Alembic migration: alembic/versions/002_create_users.py.
Users are provisioned by the department's admin tooling; this service reads
them (login, participant priority, display names) and records the station
and shift each user last won.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.sb_common.database import Base


class UserModel(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    username: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    employee_id: Mapped[str | None] = mapped_column(String(32), unique=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[str | None] = mapped_column(String(32))
    # Externally computed seniority rank; 1 bids first.
    bid_priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    # Written by the bid engine with each station assignment (migration 003).
    current_station_id: Mapped[str | None] = mapped_column(String(64))
    current_shift: Mapped[str | None] = mapped_column(String(1))
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

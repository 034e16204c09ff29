from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer
from app.core.base import Base, TimestampedMixin

class User(Base, TimestampedMixin):
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    role: Mapped[str] = mapped_column(String(16), index=True)  # patient | doctor | secretary | admin
    # bumped on password/role change; part of the token signing context
    token_generation: Mapped[int] = mapped_column(Integer, default=0)
    last_login_at: Mapped[datetime | None] = mapped_column(nullable=True)

    deletion_scheduled: Mapped[bool] = mapped_column(default=False)
    deletion_date: Mapped[datetime | None] = mapped_column(nullable=True)
    deletion_requested_at: Mapped[datetime | None] = mapped_column(nullable=True)
    deletion_notified_at: Mapped[datetime | None] = mapped_column(nullable=True)
    deletion_reason: Mapped[str | None] = mapped_column(String(200), nullable=True)
    anonymized_at: Mapped[datetime | None] = mapped_column(nullable=True)

"""User ORM model."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from stockaudit.db.base import Base

USER_ROLES = ("ADMIN", "MANAGER", "EMPLOYEE", "AUDIT_MANAGER", "AUDIT_USER")


def normalize_user_role(role: str | None) -> str:
    """Return the canonical upper-case role or raise for unknown values."""
    canonical = str(role or "").strip().upper()
    if canonical not in USER_ROLES:
        raise ValueError(f"Unknown role: {role}")
    return canonical


class User(Base):
    """System account; only its role matters to the audit engine."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(Enum(*USER_ROLES, name="user_role"), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

"""Inventory transaction ledger rows."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stockaudit.db.base import Base

TRANSACTION_TYPES = ("check-in", "check-out", "transfer")
TRANSACTION_STATUSES = ("pending", "completed", "rejected", "cancelled")


class Transaction(Base):
    """Single check-in, check-out or transfer movement."""

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    transaction_code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    transaction_type: Mapped[str] = mapped_column(Enum(*TRANSACTION_TYPES, name="transaction_type"), nullable=False)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    source_warehouse_id: Mapped[int | None] = mapped_column(ForeignKey("warehouses.id"), nullable=True)
    destination_warehouse_id: Mapped[int | None] = mapped_column(ForeignKey("warehouses.id"), nullable=True)
    status: Mapped[str] = mapped_column(Enum(*TRANSACTION_STATUSES, name="transaction_status"), nullable=False, default="completed")
    rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    audit_session_id: Mapped[int | None] = mapped_column(ForeignKey("audit_sessions.id"), nullable=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

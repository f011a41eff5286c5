"""Audit session, verification and action log models."""

from datetime import date, datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import JSON, Date, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockaudit.db.base import Base
from stockaudit.models.inventory import Item, Warehouse
from stockaudit.models.user import User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditSessionStatus(str, PyEnum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RECONCILIATION = "reconciliation"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class VerificationStatus(str, PyEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETE = "complete"
    SHORT = "short"
    EXCESS = "excess"


class AuditActionType(str, PyEnum):
    CREATE = "create"
    BEGIN_COUNTING = "begin-counting"
    CONFIRM = "confirm"
    OVERRIDE = "override"
    LOCK = "lock"
    UNLOCK = "unlock"
    RECON_CHECKIN = "recon-checkin"
    RECON_CHECKOUT = "recon-checkout"
    START_RECONCILIATION = "start-reconciliation"
    COMPLETE = "complete"
    CANCEL = "cancel"
    EXTEND = "extend"


def _enum_column(enum_cls: type[PyEnum], name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda members: [member.value for member in members],
    )


class AuditSession(Base):
    """Time-boxed physical stock count against one warehouse."""

    __tablename__ = "audit_sessions"

    id: Mapped[int] = mapped_column(primary_key=True)
    audit_code: Mapped[str | None] = mapped_column(String(32), nullable=True, unique=True)
    warehouse_id: Mapped[int] = mapped_column(ForeignKey("warehouses.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[AuditSessionStatus] = mapped_column(
        _enum_column(AuditSessionStatus, "audit_session_status"),
        nullable=False,
        default=AuditSessionStatus.OPEN,
    )
    creator_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    status_updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    warehouse: Mapped[Warehouse] = relationship()
    creator: Mapped[User] = relationship()
    verifications: Mapped[list["AuditVerification"]] = relationship(
        back_populates="session",
        order_by="AuditVerification.serial_number",
    )


class WarehouseFreeze(Base):
    """Exclusive freeze held on a warehouse by one non-terminal session."""

    __tablename__ = "warehouse_freezes"

    warehouse_id: Mapped[int] = mapped_column(ForeignKey("warehouses.id"), primary_key=True)
    session_id: Mapped[int] = mapped_column(ForeignKey("audit_sessions.id"), nullable=False, unique=True)
    frozen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class AuditVerification(Base):
    """Per-item comparison of system quantity against a physical count."""

    __tablename__ = "audit_verifications"

    id: Mapped[int] = mapped_column(primary_key=True)
    session_id: Mapped[int] = mapped_column(ForeignKey("audit_sessions.id"), nullable=False)
    serial_number: Mapped[int] = mapped_column(Integer, nullable=False)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False)
    batch_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    system_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    physical_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    discrepancy: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[VerificationStatus] = mapped_column(
        _enum_column(VerificationStatus, "verification_status"),
        nullable=False,
        default=VerificationStatus.PENDING,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    confirmed_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    locked_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    override_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    override_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    override_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)

    session: Mapped[AuditSession] = relationship(back_populates="verifications")
    item: Mapped[Item] = relationship()
    confirmer: Mapped[User | None] = relationship(foreign_keys=[confirmed_by])
    overrider: Mapped[User | None] = relationship(foreign_keys=[override_by])

    __table_args__ = (
        Index("uq_audit_verifications_session_item_batch", "session_id", "item_id", "batch_number", unique=True),
        Index("uq_audit_verifications_session_serial", "session_id", "serial_number", unique=True),
    )
    __mapper_args__ = {"version_id_col": version}


class AuditActionLog(Base):
    """Append-only trail of every state-changing audit operation."""

    __tablename__ = "audit_action_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    session_id: Mapped[int] = mapped_column(ForeignKey("audit_sessions.id"), nullable=False, index=True)
    verification_id: Mapped[int | None] = mapped_column(ForeignKey("audit_verifications.id"), nullable=True)
    performer_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    action_type: Mapped[AuditActionType] = mapped_column(
        _enum_column(AuditActionType, "audit_action_type"),
        nullable=False,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    performed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    performer: Mapped[User] = relationship()


class AuditTeamMember(Base):
    """Counter assigned to a warehouse by an audit manager."""

    __tablename__ = "audit_team_members"

    id: Mapped[int] = mapped_column(primary_key=True)
    manager_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    warehouse_id: Mapped[int] = mapped_column(ForeignKey("warehouses.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user: Mapped[User] = relationship(foreign_keys=[user_id])
    warehouse: Mapped[Warehouse] = relationship()

    __table_args__ = (
        Index("uq_audit_team_user_warehouse", "user_id", "warehouse_id", unique=True),
    )

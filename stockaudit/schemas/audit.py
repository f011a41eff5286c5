"""Audit session, verification and reconciliation schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict

from stockaudit.models.audit import AuditActionType, AuditSessionStatus, VerificationStatus


class AuditSessionCreate(BaseModel):
    """Payload for opening an audit; the freeze must be confirmed explicitly."""

    warehouse_id: int
    title: str
    description: str | None = None
    start_date: date
    end_date: date
    freeze_confirmed: bool = False


class AuditSessionRead(BaseModel):
    id: int
    audit_code: str | None
    warehouse_id: int
    title: str
    description: str | None
    start_date: date
    end_date: date
    status: AuditSessionStatus
    creator_id: int
    created_at: datetime
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class AuditSessionStatusUpdate(BaseModel):
    status: AuditSessionStatus
    notes: str | None = None


class ExtendRequest(BaseModel):
    end_date: date


class CancelRequest(BaseModel):
    notes: str | None = None


class CompleteRequest(BaseModel):
    notes: str | None = None


class VerificationRead(BaseModel):
    id: int
    session_id: int
    serial_number: int
    item_id: int
    item_sku: str | None = None
    item_name: str | None = None
    batch_number: str | None
    system_quantity: int
    physical_quantity: int | None
    discrepancy: int | None
    status: VerificationStatus
    notes: str | None
    confirmed_by: int | None
    confirmer_name: str | None = None
    confirmed_at: datetime | None
    locked_by: int | None
    override_by: int | None
    overrider_name: str | None = None
    override_at: datetime | None
    override_notes: str | None
    can_edit: bool = False
    is_locked: bool = False

    model_config = ConfigDict(from_attributes=True)


class ConfirmRequest(BaseModel):
    physical_quantity: int
    batch_number: str | None = None
    notes: str | None = None


class OverrideRequest(ConfirmRequest):
    override_notes: str = ""


class QuickEditRequest(ConfirmRequest):
    override_notes: str | None = None


class LockRequest(BaseModel):
    notes: str | None = None


class ReconActionRequest(BaseModel):
    verification_id: int
    quantity: int
    notes: str | None = None


class CanCompleteRead(BaseModel):
    can_complete: bool
    all_complete: bool
    has_discrepancies: bool
    has_pending_transactions: bool
    discrepancy_count: int
    pending_count: int
    status: str
    message: str


class TransactionRead(BaseModel):
    id: int
    transaction_code: str
    transaction_type: str
    item_id: int
    quantity: int
    source_warehouse_id: int | None
    destination_warehouse_id: int | None
    status: str
    rate: Decimal | None
    reason: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PendingTransactionsRead(BaseModel):
    checkouts: list[TransactionRead]
    checkins: list[TransactionRead]
    transfers: list[TransactionRead]
    total: int


class ActionLogRead(BaseModel):
    id: int
    session_id: int
    verification_id: int | None
    performer_id: int
    performer_name: str | None = None
    action_type: AuditActionType
    notes: str | None
    details: dict[str, Any] | None
    performed_at: datetime

    model_config = ConfigDict(from_attributes=True)

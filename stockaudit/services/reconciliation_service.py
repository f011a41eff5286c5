"""Reconciliation engine: discrepancy classification, recon actions and the completion gate."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from stockaudit.core.errors import PreconditionError, ValidationError
from stockaudit.core.permissions import Capability, ensure_capability
from stockaudit.db.session import versioned_unit_of_work
from stockaudit.models import (
    AuditActionType,
    AuditSession,
    AuditSessionStatus,
    AuditVerification,
    User,
    VerificationStatus,
)
from stockaudit.services.action_log_service import log_action
from stockaudit.services.audit_status import classify_discrepancy
from stockaudit.services.ledger_service import PendingTransactions, TransactionLedger
from stockaudit.services.session_guards import (
    ensure_session_status,
    get_session,
    get_verification,
    hold_session_status,
    session_label,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CanCompleteResult:
    can_complete: bool
    all_complete: bool
    has_discrepancies: bool
    has_pending_transactions: bool
    discrepancy_count: int
    pending_count: int
    status: str

    def explanation(self) -> str:
        reasons: list[str] = []
        if self.discrepancy_count:
            reasons.append(f"{self.discrepancy_count} item(s) still have unresolved discrepancies")
        if self.pending_count:
            reasons.append(f"{self.pending_count} pending transaction(s) must be resolved first")
        if not reasons:
            return "Audit is ready to be completed."
        return "; ".join(reasons) + "."


def apply_discrepancy(verification: AuditVerification) -> VerificationStatus:
    """Recompute discrepancy against the current system quantity and reclassify the row."""
    discrepancy = int(verification.physical_quantity) - verification.system_quantity
    verification.discrepancy = discrepancy
    verification.status = classify_discrepancy(discrepancy)
    return verification.status


def reclassify_session(db: Session, session: AuditSession) -> dict[str, int]:
    """Classify every counted row as complete / short / excess. Returns per-status counts."""
    counts: dict[str, int] = {status.value: 0 for status in (
        VerificationStatus.COMPLETE,
        VerificationStatus.SHORT,
        VerificationStatus.EXCESS,
    )}
    rows = db.scalars(
        select(AuditVerification)
        .where(AuditVerification.session_id == session.id)
        .order_by(AuditVerification.serial_number)
    ).all()
    for verification in rows:
        if verification.physical_quantity is None:
            raise PreconditionError(
                f"Item #{verification.serial_number} has not been physically counted yet.",
                verification_id=verification.id,
            )
        counts[apply_discrepancy(verification).value] += 1
    db.flush()
    return counts


def count_unresolved(db: Session, session_id: int) -> int:
    return int(
        db.scalar(
            select(func.count(AuditVerification.id)).where(
                AuditVerification.session_id == session_id,
                AuditVerification.status != VerificationStatus.COMPLETE,
            )
        )
        or 0
    )


def pending_transactions(db: Session, session_id: int) -> PendingTransactions:
    """Ledger transactions still pending against the session's warehouse."""
    session = get_session(db, session_id)
    return TransactionLedger(db).list_pending(session.warehouse_id)


def can_complete(db: Session, session_id: int) -> CanCompleteResult:
    """Readiness gate, recomputed on every call."""
    session = get_session(db, session_id)
    discrepancy_count = count_unresolved(db, session.id)
    pending_count = TransactionLedger(db).list_pending(session.warehouse_id).total
    return CanCompleteResult(
        can_complete=discrepancy_count == 0 and pending_count == 0,
        all_complete=discrepancy_count == 0,
        has_discrepancies=discrepancy_count > 0,
        has_pending_transactions=pending_count > 0,
        discrepancy_count=discrepancy_count,
        pending_count=pending_count,
        status=session.status.value,
    )


def recon_checkin(
    db: Session,
    actor: User,
    session_id: int,
    *,
    verification_id: int,
    quantity: int,
    notes: str | None = None,
) -> AuditVerification:
    """Check in found stock to close an excess discrepancy."""
    return _recon_action(
        db,
        actor,
        session_id,
        verification_id=verification_id,
        quantity=quantity,
        notes=notes,
        expected_status=VerificationStatus.EXCESS,
        action_type=AuditActionType.RECON_CHECKIN,
    )


def recon_checkout(
    db: Session,
    actor: User,
    session_id: int,
    *,
    verification_id: int,
    quantity: int,
    notes: str | None = None,
) -> AuditVerification:
    """Check out lost stock to close a short discrepancy."""
    return _recon_action(
        db,
        actor,
        session_id,
        verification_id=verification_id,
        quantity=quantity,
        notes=notes,
        expected_status=VerificationStatus.SHORT,
        action_type=AuditActionType.RECON_CHECKOUT,
    )


def _recon_action(
    db: Session,
    actor: User,
    session_id: int,
    *,
    verification_id: int,
    quantity: int,
    notes: str | None,
    expected_status: VerificationStatus,
    action_type: AuditActionType,
) -> AuditVerification:
    ensure_capability(actor, Capability.CAN_RECONCILE)
    session = get_session(db, session_id)
    action = action_type.value.replace("-", " ")
    ensure_session_status(session, {AuditSessionStatus.RECONCILIATION}, action)
    verification = get_verification(db, verification_id)
    if verification.session_id != session.id:
        raise PreconditionError(
            f"Verification {verification_id} does not belong to audit {session_label(session)}.",
            verification_id=verification_id,
        )
    if verification.status != expected_status:
        raise PreconditionError(
            f"Item #{verification.serial_number} is {verification.status.value}; "
            f"{action_type.value} applies only to {expected_status.value} items.",
            verification_status=verification.status.value,
        )

    outstanding = abs(verification.discrepancy or 0)
    if quantity <= 0:
        raise ValidationError("Quantity must be greater than zero.", quantity=quantity)
    if quantity > outstanding:
        raise ValidationError(
            f"Quantity {quantity} exceeds the outstanding discrepancy of {outstanding}.",
            quantity=quantity,
            outstanding=outstanding,
        )

    ledger = TransactionLedger(db)
    reason = notes or f"Audit {session_label(session)} reconciliation"
    checkin = action_type == AuditActionType.RECON_CHECKIN
    serial_number = verification.serial_number
    before = _snapshot(verification)
    with versioned_unit_of_work(
        db,
        f"Item #{serial_number} was changed by another user; reload and retry.",
        verification_id=verification_id,
    ):
        hold_session_status(db, session, {AuditSessionStatus.RECONCILIATION}, action)
        rate = recon_rate_for(ledger, verification.item_id, action_type)
        record = ledger.record_check_in if checkin else ledger.record_check_out
        transaction_id = record(
            item_id=verification.item_id,
            warehouse_id=session.warehouse_id,
            quantity=quantity,
            rate=rate,
            reason=reason,
            user_id=actor.id,
            audit_session_id=session.id,
        )
        verification.system_quantity += quantity if checkin else -quantity
        apply_discrepancy(verification)
        db.flush()
        log_action(
            db,
            session_id=session.id,
            actor=actor,
            action_type=action_type,
            verification_id=verification.id,
            notes=notes,
            details={
                "quantity": quantity,
                "rate": str(rate),
                "transaction_id": transaction_id,
                "before": before,
                "after": _snapshot(verification),
            },
        )

    db.refresh(verification)
    logger.info(
        "[RECON] %s audit=%s verification=%s qty=%s status=%s",
        action_type.value,
        session_label(session),
        verification.id,
        quantity,
        verification.status.value,
    )
    return verification


def _snapshot(verification: AuditVerification) -> dict[str, int | str | None]:
    return {
        "system_quantity": verification.system_quantity,
        "physical_quantity": verification.physical_quantity,
        "discrepancy": verification.discrepancy,
        "status": verification.status.value,
    }


def recon_rate_for(ledger: TransactionLedger, item_id: int, action_type: AuditActionType) -> Decimal:
    if action_type == AuditActionType.RECON_CHECKIN:
        return ledger.last_check_in_rate(item_id)
    return ledger.last_check_out_rate(item_id)

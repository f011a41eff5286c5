"""Verification workflow: confirm, override, quick edit, lock and unlock."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from stockaudit.core.errors import AuthorizationError, PreconditionError, ValidationError
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
from stockaudit.services.session_guards import (
    ensure_can_count,
    ensure_session_status,
    get_session,
    get_verification,
    hold_session_status,
)
from stockaudit.utils.time import utc_now

logger = logging.getLogger(__name__)

INLINE_OVERRIDE_REASON: str = "Physical quantity updated via inline edit"


@dataclass(frozen=True)
class VerificationView:
    """Verification row plus per-actor edit flags."""

    verification: AuditVerification
    can_edit: bool
    is_locked: bool


def can_edit(verification: AuditVerification, user: User) -> bool:
    """Pending rows are open to counters; confirmed rows only to a confirmer still holding the lock."""
    if verification.status == VerificationStatus.PENDING:
        return True
    return (
        verification.status == VerificationStatus.CONFIRMED
        and verification.confirmed_by == user.id
        and verification.locked_by == user.id
    )


def is_locked(verification: AuditVerification) -> bool:
    return verification.status != VerificationStatus.PENDING


def list_verifications(
    db: Session,
    actor: User,
    session_id: int,
    *,
    status: VerificationStatus | None = None,
) -> list[VerificationView]:
    session = get_session(db, session_id)
    query = (
        select(AuditVerification)
        .options(
            joinedload(AuditVerification.item),
            joinedload(AuditVerification.confirmer),
            joinedload(AuditVerification.overrider),
        )
        .where(AuditVerification.session_id == session.id)
    )
    if status is not None:
        query = query.where(AuditVerification.status == status)
    rows = db.scalars(query.order_by(AuditVerification.serial_number)).all()
    editable = session.status == AuditSessionStatus.IN_PROGRESS
    return [
        VerificationView(
            verification=row,
            can_edit=editable and can_edit(row, actor),
            is_locked=is_locked(row),
        )
        for row in rows
    ]


def confirm(
    db: Session,
    actor: User,
    verification_id: int,
    *,
    physical_quantity: int,
    batch_number: str | None = None,
    notes: str | None = None,
) -> AuditVerification:
    """Record a physical count and lock the row to its confirmer."""
    ensure_capability(actor, Capability.CAN_CONFIRM)
    _validate_quantity(physical_quantity)
    verification, session = _load_for_counting(db, verification_id, "confirm counts")
    ensure_can_count(db, actor, session)
    if not can_edit(verification, actor):
        raise AuthorizationError(
            f"Item #{verification.serial_number} is locked by another user's confirmation; "
            "an audit manager override is required.",
            verification_id=verification.id,
        )

    now = utc_now()
    before = _snapshot(verification)
    with versioned_unit_of_work(
        db,
        f"Item #{verification.serial_number} was changed by another user; reload and retry.",
        verification_id=verification.id,
    ):
        hold_session_status(db, session, {AuditSessionStatus.IN_PROGRESS}, "confirm counts")
        verification.physical_quantity = physical_quantity
        if batch_number is not None:
            verification.batch_number = batch_number.strip() or None
        if notes is not None:
            verification.notes = notes
        verification.discrepancy = physical_quantity - verification.system_quantity
        verification.status = VerificationStatus.CONFIRMED
        verification.confirmed_by = actor.id
        verification.confirmed_at = now
        verification.locked_by = actor.id
        db.flush()
        log_action(
            db,
            session_id=session.id,
            actor=actor,
            action_type=AuditActionType.CONFIRM,
            verification_id=verification.id,
            notes=notes,
            details={"before": before, "after": _snapshot(verification)},
        )

    db.refresh(verification)
    logger.info("[AUDIT] verification=%s confirmed qty=%s by user_id=%s", verification.id, physical_quantity, actor.id)
    return verification


def override(
    db: Session,
    actor: User,
    verification_id: int,
    *,
    physical_quantity: int,
    override_notes: str,
    batch_number: str | None = None,
    notes: str | None = None,
) -> AuditVerification:
    """Privileged re-write of a count, regardless of who holds the lock."""
    ensure_capability(actor, Capability.CAN_OVERRIDE)
    _validate_quantity(physical_quantity)
    reason = (override_notes or "").strip()
    if not reason:
        raise ValidationError("An override reason is required.")
    verification, session = _load_for_counting(db, verification_id, "override counts")

    now = utc_now()
    before = _snapshot(verification)
    with versioned_unit_of_work(
        db,
        f"Item #{verification.serial_number} was changed by another user; reload and retry.",
        verification_id=verification.id,
    ):
        hold_session_status(db, session, {AuditSessionStatus.IN_PROGRESS}, "override counts")
        verification.physical_quantity = physical_quantity
        if batch_number is not None:
            verification.batch_number = batch_number.strip() or None
        if notes is not None:
            verification.notes = notes
        verification.discrepancy = physical_quantity - verification.system_quantity
        if verification.confirmed_by is None:
            verification.confirmed_by = actor.id
            verification.confirmed_at = now
        verification.status = VerificationStatus.CONFIRMED
        verification.override_by = actor.id
        verification.override_at = now
        verification.override_notes = reason
        verification.locked_by = actor.id
        db.flush()
        log_action(
            db,
            session_id=session.id,
            actor=actor,
            action_type=AuditActionType.OVERRIDE,
            verification_id=verification.id,
            notes=reason,
            details={"before": before, "after": _snapshot(verification)},
        )

    db.refresh(verification)
    logger.warning(
        "[AUDIT] verification=%s overridden qty=%s by user_id=%s reason=%s",
        verification.id,
        physical_quantity,
        actor.id,
        reason,
    )
    return verification


def quick_edit(
    db: Session,
    actor: User,
    verification_id: int,
    *,
    physical_quantity: int,
    batch_number: str | None = None,
    notes: str | None = None,
    override_notes: str | None = None,
) -> AuditVerification:
    """Inline edit: confirm when the actor may edit, otherwise override."""
    verification = get_verification(db, verification_id)
    needs_override = (
        verification.status == VerificationStatus.CONFIRMED
        and not can_edit(verification, actor)
    )
    if needs_override:
        return override(
            db,
            actor,
            verification_id,
            physical_quantity=physical_quantity,
            override_notes=override_notes or INLINE_OVERRIDE_REASON,
            batch_number=batch_number,
            notes=notes,
        )
    return confirm(
        db,
        actor,
        verification_id,
        physical_quantity=physical_quantity,
        batch_number=batch_number,
        notes=notes,
    )


def lock(db: Session, actor: User, verification_id: int, notes: str | None = None) -> AuditVerification:
    """Take a confirmed row away from its confirmer."""
    return _set_lock(db, actor, verification_id, AuditActionType.LOCK, notes)


def unlock(db: Session, actor: User, verification_id: int, notes: str | None = None) -> AuditVerification:
    """Hand a confirmed row back to its confirmer for editing."""
    return _set_lock(db, actor, verification_id, AuditActionType.UNLOCK, notes)


def _set_lock(
    db: Session,
    actor: User,
    verification_id: int,
    action_type: AuditActionType,
    notes: str | None,
) -> AuditVerification:
    ensure_capability(actor, Capability.CAN_OVERRIDE)
    verification, session = _load_for_counting(db, verification_id, f"{action_type.value} counts")
    if verification.status != VerificationStatus.CONFIRMED:
        raise PreconditionError(
            f"Item #{verification.serial_number} is {verification.status.value}; only confirmed items can be "
            f"{action_type.value}ed.",
            verification_status=verification.status.value,
        )
    new_holder = actor.id if action_type == AuditActionType.LOCK else verification.confirmed_by
    previous_holder = verification.locked_by

    with versioned_unit_of_work(
        db,
        f"Item #{verification.serial_number} was changed by another user; reload and retry.",
        verification_id=verification.id,
    ):
        hold_session_status(db, session, {AuditSessionStatus.IN_PROGRESS}, f"{action_type.value} counts")
        verification.locked_by = new_holder
        db.flush()
        log_action(
            db,
            session_id=session.id,
            actor=actor,
            action_type=action_type,
            verification_id=verification.id,
            notes=notes,
            details={"locked_by_before": previous_holder, "locked_by_after": new_holder},
        )

    db.refresh(verification)
    logger.info("[AUDIT] verification=%s %sed by user_id=%s", verification.id, action_type.value, actor.id)
    return verification


def _load_for_counting(db: Session, verification_id: int, action: str) -> tuple[AuditVerification, AuditSession]:
    verification = get_verification(db, verification_id)
    session = get_session(db, verification.session_id)
    ensure_session_status(session, {AuditSessionStatus.IN_PROGRESS}, action)
    return verification, session


def _validate_quantity(physical_quantity: int) -> None:
    if physical_quantity < 0:
        raise ValidationError("Physical quantity cannot be negative.", physical_quantity=physical_quantity)


def _snapshot(verification: AuditVerification) -> dict[str, Any]:
    return {
        "physical_quantity": verification.physical_quantity,
        "batch_number": verification.batch_number,
        "status": verification.status.value,
        "confirmed_by": verification.confirmed_by,
        "locked_by": verification.locked_by,
    }

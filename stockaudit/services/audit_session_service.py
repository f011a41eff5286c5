"""Audit session lifecycle: open -> in_progress -> reconciliation -> completed / cancelled."""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from stockaudit.core.config import settings
from stockaudit.core.errors import PreconditionError, ValidationError
from stockaudit.core.permissions import Capability, ensure_capability
from stockaudit.db.session import unit_of_work, versioned_unit_of_work
from stockaudit.models import (
    AuditActionType,
    AuditSession,
    AuditSessionStatus,
    AuditVerification,
    User,
    VerificationStatus,
)
from stockaudit.services.action_log_service import log_action
from stockaudit.services.audit_status import (
    ACTIVE_SESSION_STATUSES,
    can_transition,
    transition_values,
)
from stockaudit.services.freeze_service import acquire_freeze, release_freeze
from stockaudit.services.inventory_service import InventorySnapshotProvider, get_active_warehouse
from stockaudit.services.reconciliation_service import can_complete, reclassify_session
from stockaudit.services.session_guards import ensure_session_status, get_session, session_label
from stockaudit.utils.time import audit_code_date, is_well_ordered, utc_now

logger = logging.getLogger(__name__)


def list_sessions(
    db: Session,
    *,
    warehouse_id: int | None = None,
    status: AuditSessionStatus | None = None,
) -> list[AuditSession]:
    query = select(AuditSession)
    if warehouse_id is not None:
        query = query.where(AuditSession.warehouse_id == warehouse_id)
    if status is not None:
        query = query.where(AuditSession.status == status)
    return list(db.scalars(query.order_by(AuditSession.created_at.desc(), AuditSession.id.desc())).all())


def create_session(
    db: Session,
    actor: User,
    *,
    warehouse_id: int,
    title: str,
    start_date: date,
    end_date: date,
    freeze_confirmed: bool,
    description: str | None = None,
) -> AuditSession:
    """Open an audit and freeze its warehouse."""
    ensure_capability(actor, Capability.CAN_FINALIZE)
    if not freeze_confirmed:
        raise ValidationError("You must confirm the warehouse freeze to create an audit session.")
    if not (title or "").strip():
        raise ValidationError("Audit title is required.")
    if not is_well_ordered(start_date, end_date):
        raise ValidationError(
            "Start date must be on or before end date.",
            start_date=start_date.isoformat(),
            end_date=end_date.isoformat(),
        )
    get_active_warehouse(db, warehouse_id)

    with unit_of_work(db):
        now = utc_now()
        session = AuditSession(
            warehouse_id=warehouse_id,
            title=title.strip(),
            description=description,
            start_date=start_date,
            end_date=end_date,
            status=AuditSessionStatus.OPEN,
            creator_id=actor.id,
            created_at=now,
            status_updated_at=now,
        )
        db.add(session)
        db.flush()
        session.audit_code = f"{settings.audit_code_prefix}-{audit_code_date(now)}-{session.id:04d}"
        acquire_freeze(db, session)
        log_action(
            db,
            session_id=session.id,
            actor=actor,
            action_type=AuditActionType.CREATE,
            notes=session.title,
            details={
                "warehouse_id": warehouse_id,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
            },
        )

    db.refresh(session)
    logger.info("[AUDIT] %s created for warehouse %s by user_id=%s", session.audit_code, warehouse_id, actor.id)
    return session


def begin_counting(db: Session, actor: User, session_id: int) -> AuditSession:
    """Move to in_progress and snapshot one pending verification per stocked item."""
    ensure_capability(actor, Capability.CAN_FINALIZE)
    session = get_session(db, session_id)
    ensure_session_status(session, {AuditSessionStatus.OPEN}, "begin counting")

    with unit_of_work(db):
        _transition(db, session, AuditSessionStatus.OPEN, AuditSessionStatus.IN_PROGRESS, "begin counting")
        acquire_freeze(db, session)
        lines = InventorySnapshotProvider(db).list_on_hand(session.warehouse_id)
        for serial_number, line in enumerate(lines, start=1):
            db.add(
                AuditVerification(
                    session_id=session.id,
                    serial_number=serial_number,
                    item_id=line.item_id,
                    system_quantity=line.quantity,
                    status=VerificationStatus.PENDING,
                )
            )
        log_action(
            db,
            session_id=session.id,
            actor=actor,
            action_type=AuditActionType.BEGIN_COUNTING,
            details={"verification_count": len(lines)},
        )

    db.refresh(session)
    logger.info("[AUDIT] %s counting started with %s item(s)", session.audit_code, len(lines))
    return session


def start_reconciliation(db: Session, actor: User, session_id: int) -> AuditSession:
    """Freeze counts and classify every row as complete / short / excess."""
    ensure_capability(actor, Capability.CAN_RECONCILE)
    session = get_session(db, session_id)
    ensure_session_status(session, {AuditSessionStatus.IN_PROGRESS}, "start reconciliation")
    uncounted = db.scalar(
        select(func.count(AuditVerification.id)).where(
            AuditVerification.session_id == session.id,
            AuditVerification.physical_quantity.is_(None),
        )
    )
    if uncounted:
        raise PreconditionError(
            f"{uncounted} item(s) have not been physically counted yet.",
            uncounted_count=int(uncounted),
        )

    with versioned_unit_of_work(
        db,
        f"Counts in audit {session_label(session)} changed while reconciliation was starting; retry.",
        session_id=session.id,
    ):
        _transition(
            db,
            session,
            AuditSessionStatus.IN_PROGRESS,
            AuditSessionStatus.RECONCILIATION,
            "start reconciliation",
        )
        counts = reclassify_session(db, session)
        log_action(
            db,
            session_id=session.id,
            actor=actor,
            action_type=AuditActionType.START_RECONCILIATION,
            details=counts,
        )

    db.refresh(session)
    logger.info("[AUDIT] %s reconciliation started: %s", session.audit_code, counts)
    return session


def complete_session(db: Session, actor: User, session_id: int, notes: str | None = None) -> AuditSession:
    """Finalize the audit once the can-complete gate passes; releases the freeze."""
    ensure_capability(actor, Capability.CAN_FINALIZE)
    session = get_session(db, session_id)
    ensure_session_status(session, {AuditSessionStatus.RECONCILIATION}, "complete the audit")
    gate = can_complete(db, session.id)
    if not gate.can_complete:
        raise PreconditionError(
            f"Cannot complete audit {session_label(session)}: {gate.explanation()}",
            discrepancy_count=gate.discrepancy_count,
            pending_count=gate.pending_count,
        )

    with unit_of_work(db):
        _transition(
            db,
            session,
            AuditSessionStatus.RECONCILIATION,
            AuditSessionStatus.COMPLETED,
            "complete the audit",
        )
        release_freeze(db, session)
        log_action(
            db,
            session_id=session.id,
            actor=actor,
            action_type=AuditActionType.COMPLETE,
            notes=notes,
        )

    db.refresh(session)
    logger.info("[AUDIT] %s completed by user_id=%s", session.audit_code, actor.id)
    return session


def cancel_session(db: Session, actor: User, session_id: int, notes: str | None = None) -> AuditSession:
    """Cancel from any non-terminal status; verifications are left as they are."""
    ensure_capability(actor, Capability.CAN_FINALIZE)
    session = get_session(db, session_id)
    ensure_session_status(session, ACTIVE_SESSION_STATUSES, "cancel the audit")
    previous = session.status

    with unit_of_work(db):
        _transition(db, session, previous, AuditSessionStatus.CANCELLED, "cancel the audit")
        release_freeze(db, session)
        log_action(
            db,
            session_id=session.id,
            actor=actor,
            action_type=AuditActionType.CANCEL,
            notes=notes,
            details={"previous_status": previous.value},
        )

    db.refresh(session)
    logger.info("[AUDIT] %s cancelled from %s by user_id=%s", session.audit_code, previous.value, actor.id)
    return session


def extend_session(db: Session, actor: User, session_id: int, new_end_date: date) -> AuditSession:
    """Push the end date forward; never backwards."""
    ensure_capability(actor, Capability.CAN_FINALIZE)
    session = get_session(db, session_id)
    ensure_session_status(session, ACTIVE_SESSION_STATUSES, "extend the audit")
    old_end_date = session.end_date
    if new_end_date <= old_end_date:
        raise ValidationError(
            f"New end date must be after the current end date ({old_end_date.isoformat()}).",
            end_date=old_end_date.isoformat(),
        )

    with unit_of_work(db):
        result = db.execute(
            update(AuditSession)
            .where(
                AuditSession.id == session.id,
                AuditSession.status.in_(list(ACTIVE_SESSION_STATUSES)),
                AuditSession.end_date == old_end_date,
            )
            .values(end_date=new_end_date)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise _lost_race(db, session, "extend the audit")
        log_action(
            db,
            session_id=session.id,
            actor=actor,
            action_type=AuditActionType.EXTEND,
            details={"old_end_date": old_end_date.isoformat(), "new_end_date": new_end_date.isoformat()},
        )

    db.refresh(session)
    logger.info("[AUDIT] %s extended to %s", session.audit_code, new_end_date.isoformat())
    return session


def update_status(
    db: Session,
    actor: User,
    session_id: int,
    new_status: AuditSessionStatus,
    notes: str | None = None,
) -> AuditSession:
    """Route a requested status change to the matching lifecycle operation."""
    session = get_session(db, session_id)
    if not can_transition(session.status, new_status):
        raise PreconditionError(
            f"Audit {session_label(session)} cannot move from {session.status.value} to {new_status.value}.",
            status=session.status.value,
        )
    if new_status == AuditSessionStatus.IN_PROGRESS:
        return begin_counting(db, actor, session_id)
    if new_status == AuditSessionStatus.RECONCILIATION:
        return start_reconciliation(db, actor, session_id)
    if new_status == AuditSessionStatus.COMPLETED:
        return complete_session(db, actor, session_id, notes)
    return cancel_session(db, actor, session_id, notes)


def _transition(
    db: Session,
    session: AuditSession,
    expected: AuditSessionStatus,
    new_status: AuditSessionStatus,
    action: str,
) -> None:
    """Conditional status write; loses cleanly to a concurrent transition."""
    result = db.execute(
        update(AuditSession)
        .where(AuditSession.id == session.id, AuditSession.status == expected)
        .values(**transition_values(new_status, utc_now()))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise _lost_race(db, session, action)
    db.expire(session)


def _lost_race(db: Session, session: AuditSession, action: str) -> PreconditionError:
    current = db.scalar(select(AuditSession.status).where(AuditSession.id == session.id))
    label = current.value if current is not None else "missing"
    return PreconditionError(
        f"Cannot {action}: audit {session_label(session)} is now {label}.",
        status=label,
    )

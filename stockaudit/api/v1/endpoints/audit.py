"""Audit session, verification and reconciliation endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from stockaudit.core.permissions import Capability
from stockaudit.core.security import get_current_user, require_capability
from stockaudit.db.session import get_db
from stockaudit.models import (
    AuditActionLog,
    AuditActionType,
    AuditSession,
    AuditSessionStatus,
    AuditVerification,
    User,
    VerificationStatus,
)
from stockaudit.schemas.audit import (
    ActionLogRead,
    AuditSessionCreate,
    AuditSessionRead,
    AuditSessionStatusUpdate,
    CanCompleteRead,
    CancelRequest,
    CompleteRequest,
    ConfirmRequest,
    ExtendRequest,
    LockRequest,
    OverrideRequest,
    PendingTransactionsRead,
    QuickEditRequest,
    ReconActionRequest,
    TransactionRead,
    VerificationRead,
)
from stockaudit.services import (
    action_log_service,
    audit_reports,
    audit_session_service,
    reconciliation_service,
    verification_service,
)
from stockaudit.services.session_guards import get_session

router: APIRouter = APIRouter()

reconciler = require_capability(Capability.CAN_RECONCILE)


def _verification_read(
    verification: AuditVerification,
    *,
    can_edit: bool = False,
    is_locked: bool | None = None,
) -> VerificationRead:
    payload = VerificationRead.model_validate(verification)
    payload.item_sku = verification.item.sku if verification.item else None
    payload.item_name = verification.item.name if verification.item else None
    payload.confirmer_name = verification.confirmer.username if verification.confirmer else None
    payload.overrider_name = verification.overrider.username if verification.overrider else None
    payload.can_edit = can_edit
    payload.is_locked = verification_service.is_locked(verification) if is_locked is None else is_locked
    return payload


def _log_read(entry: AuditActionLog) -> ActionLogRead:
    payload = ActionLogRead.model_validate(entry)
    payload.performer_name = entry.performer.username if entry.performer else None
    return payload


@router.post("/sessions", response_model=AuditSessionRead, status_code=status.HTTP_201_CREATED)
def create_audit_session(
    payload: AuditSessionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AuditSession:
    return audit_session_service.create_session(
        db,
        current_user,
        warehouse_id=payload.warehouse_id,
        title=payload.title,
        description=payload.description,
        start_date=payload.start_date,
        end_date=payload.end_date,
        freeze_confirmed=payload.freeze_confirmed,
    )


@router.get("/sessions", response_model=list[AuditSessionRead])
def list_audit_sessions(
    warehouse_id: int | None = Query(default=None),
    status_filter: AuditSessionStatus | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[AuditSession]:
    return audit_session_service.list_sessions(db, warehouse_id=warehouse_id, status=status_filter)


@router.get("/sessions/{session_id}", response_model=AuditSessionRead)
def get_audit_session(
    session_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AuditSession:
    return get_session(db, session_id)


@router.patch("/sessions/{session_id}", response_model=AuditSessionRead)
def update_audit_session_status(
    session_id: int,
    payload: AuditSessionStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AuditSession:
    return audit_session_service.update_status(db, current_user, session_id, payload.status, payload.notes)


@router.post("/sessions/{session_id}/extend", response_model=AuditSessionRead)
def extend_audit_session(
    session_id: int,
    payload: ExtendRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AuditSession:
    return audit_session_service.extend_session(db, current_user, session_id, payload.end_date)


@router.post("/sessions/{session_id}/cancel", response_model=AuditSessionRead)
def cancel_audit_session(
    session_id: int,
    payload: CancelRequest | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AuditSession:
    notes = payload.notes if payload else None
    return audit_session_service.cancel_session(db, current_user, session_id, notes)


@router.post("/sessions/{session_id}/begin-counting", response_model=AuditSessionRead)
def begin_counting(
    session_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AuditSession:
    return audit_session_service.begin_counting(db, current_user, session_id)


@router.post("/sessions/{session_id}/start-reconciliation", response_model=AuditSessionRead)
def start_reconciliation(
    session_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AuditSession:
    return audit_session_service.start_reconciliation(db, current_user, session_id)


@router.post("/sessions/{session_id}/complete", response_model=AuditSessionRead)
def complete_audit_session(
    session_id: int,
    payload: CompleteRequest | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AuditSession:
    notes = payload.notes if payload else None
    return audit_session_service.complete_session(db, current_user, session_id, notes)


@router.get("/sessions/{session_id}/verifications", response_model=list[VerificationRead])
def list_session_verifications(
    session_id: int,
    status_filter: VerificationStatus | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[VerificationRead]:
    views = verification_service.list_verifications(db, current_user, session_id, status=status_filter)
    return [
        _verification_read(view.verification, can_edit=view.can_edit, is_locked=view.is_locked)
        for view in views
    ]


@router.get("/sessions/{session_id}/can-complete", response_model=CanCompleteRead)
def can_complete(
    session_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CanCompleteRead:
    result = reconciliation_service.can_complete(db, session_id)
    return CanCompleteRead(
        can_complete=result.can_complete,
        all_complete=result.all_complete,
        has_discrepancies=result.has_discrepancies,
        has_pending_transactions=result.has_pending_transactions,
        discrepancy_count=result.discrepancy_count,
        pending_count=result.pending_count,
        status=result.status,
        message=result.explanation(),
    )


@router.get("/sessions/{session_id}/pending-transactions", response_model=PendingTransactionsRead)
def pending_transactions(
    session_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PendingTransactionsRead:
    pending = reconciliation_service.pending_transactions(db, session_id)
    return PendingTransactionsRead(
        checkouts=[TransactionRead.model_validate(row) for row in pending.checkouts],
        checkins=[TransactionRead.model_validate(row) for row in pending.checkins],
        transfers=[TransactionRead.model_validate(row) for row in pending.transfers],
        total=pending.total,
    )


@router.get("/sessions/{session_id}/logs", response_model=list[ActionLogRead])
def list_session_logs(
    session_id: int,
    performer_id: int | None = Query(default=None),
    action_type: AuditActionType | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[ActionLogRead]:
    session = get_session(db, session_id)
    entries = action_log_service.list_logs(db, session.id, performer_id=performer_id, action_type=action_type)
    return [_log_read(entry) for entry in entries]


@router.get("/sessions/{session_id}/report")
def export_session_report(
    session_id: int,
    report_format: Literal["csv", "pdf"] = Query(default="csv", alias="format"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Response:
    session, rows = audit_reports.build_report_rows(db, current_user, session_id)
    filename = audit_reports.report_filename(session, report_format)
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    if report_format == "pdf":
        return Response(content=audit_reports.render_pdf(session, rows), media_type="application/pdf", headers=headers)
    return Response(
        content=audit_reports.render_csv(session, rows),
        media_type="text/csv; charset=utf-8",
        headers=headers,
    )


@router.post("/sessions/{session_id}/recon-checkin", response_model=VerificationRead)
def recon_checkin(
    session_id: int,
    payload: ReconActionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(reconciler),
) -> VerificationRead:
    verification = reconciliation_service.recon_checkin(
        db,
        current_user,
        session_id,
        verification_id=payload.verification_id,
        quantity=payload.quantity,
        notes=payload.notes,
    )
    return _verification_read(verification)


@router.post("/sessions/{session_id}/recon-checkout", response_model=VerificationRead)
def recon_checkout(
    session_id: int,
    payload: ReconActionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(reconciler),
) -> VerificationRead:
    verification = reconciliation_service.recon_checkout(
        db,
        current_user,
        session_id,
        verification_id=payload.verification_id,
        quantity=payload.quantity,
        notes=payload.notes,
    )
    return _verification_read(verification)


@router.post("/verifications/{verification_id}/confirm", response_model=VerificationRead)
def confirm_verification(
    verification_id: int,
    payload: ConfirmRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> VerificationRead:
    verification = verification_service.confirm(
        db,
        current_user,
        verification_id,
        physical_quantity=payload.physical_quantity,
        batch_number=payload.batch_number,
        notes=payload.notes,
    )
    return _verification_read(verification, can_edit=verification_service.can_edit(verification, current_user))


@router.post("/verifications/{verification_id}/override", response_model=VerificationRead)
def override_verification(
    verification_id: int,
    payload: OverrideRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> VerificationRead:
    verification = verification_service.override(
        db,
        current_user,
        verification_id,
        physical_quantity=payload.physical_quantity,
        override_notes=payload.override_notes,
        batch_number=payload.batch_number,
        notes=payload.notes,
    )
    return _verification_read(verification, can_edit=verification_service.can_edit(verification, current_user))


@router.post("/verifications/{verification_id}/edit", response_model=VerificationRead)
def quick_edit_verification(
    verification_id: int,
    payload: QuickEditRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> VerificationRead:
    verification = verification_service.quick_edit(
        db,
        current_user,
        verification_id,
        physical_quantity=payload.physical_quantity,
        batch_number=payload.batch_number,
        notes=payload.notes,
        override_notes=payload.override_notes,
    )
    return _verification_read(verification, can_edit=verification_service.can_edit(verification, current_user))


@router.post("/verifications/{verification_id}/lock", response_model=VerificationRead)
def lock_verification(
    verification_id: int,
    payload: LockRequest | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> VerificationRead:
    verification = verification_service.lock(db, current_user, verification_id, payload.notes if payload else None)
    return _verification_read(verification)


@router.post("/verifications/{verification_id}/unlock", response_model=VerificationRead)
def unlock_verification(
    verification_id: int,
    payload: LockRequest | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> VerificationRead:
    verification = verification_service.unlock(db, current_user, verification_id, payload.notes if payload else None)
    return _verification_read(verification)

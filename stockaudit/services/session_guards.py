"""Centralized lookup, state and assignment guards for audit operations."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from stockaudit.core.errors import AuthorizationError, NotFoundError, PreconditionError
from stockaudit.core.permissions import is_privileged
from stockaudit.models import AuditSession, AuditSessionStatus, AuditTeamMember, AuditVerification, User
from stockaudit.services.audit_status import is_terminal


def get_session(db: Session, session_id: int) -> AuditSession:
    session = db.get(AuditSession, session_id)
    if session is None:
        raise NotFoundError(f"Audit session {session_id} not found.", session_id=session_id)
    return session


def get_verification(db: Session, verification_id: int) -> AuditVerification:
    verification = db.get(AuditVerification, verification_id)
    if verification is None:
        raise NotFoundError(f"Verification {verification_id} not found.", verification_id=verification_id)
    return verification


def session_label(session: AuditSession) -> str:
    return session.audit_code or f"#{session.id}"


def ensure_session_status(
    session: AuditSession,
    allowed: Iterable[AuditSessionStatus],
    action: str,
) -> None:
    """Reject the action unless the session is in one of the allowed statuses."""
    allowed_set = set(allowed)
    if session.status in allowed_set:
        return
    if is_terminal(session.status):
        message = f"Audit {session_label(session)} is {session.status.value}; no further changes are allowed."
    else:
        expected = ", ".join(sorted(status.value for status in allowed_set))
        message = (
            f"Cannot {action} while audit {session_label(session)} is {session.status.value} "
            f"(requires {expected})."
        )
    raise PreconditionError(message, status=session.status.value)


def is_assigned_counter(db: Session, user_id: int, warehouse_id: int) -> bool:
    member_id = db.scalar(
        select(AuditTeamMember.id)
        .where(AuditTeamMember.user_id == user_id, AuditTeamMember.warehouse_id == warehouse_id)
        .limit(1)
    )
    return member_id is not None


def ensure_can_count(db: Session, user: User, session: AuditSession) -> None:
    """Counters must be assigned to the session's warehouse; managers count anywhere."""
    if is_privileged(user):
        return
    if not is_assigned_counter(db, user.id, session.warehouse_id):
        raise AuthorizationError(
            f"You are not assigned to count warehouse {session.warehouse_id}.",
            warehouse_id=session.warehouse_id,
        )


def hold_session_status(
    db: Session,
    session: AuditSession,
    allowed: Iterable[AuditSessionStatus],
    action: str,
) -> None:
    """Re-check the session status inside the caller's transaction.

    The no-op conditional UPDATE holds the session row until commit, so a
    concurrent transition either lands first and is refused here, or waits.
    """
    allowed_set = set(allowed)
    result = db.execute(
        update(AuditSession)
        .where(AuditSession.id == session.id, AuditSession.status.in_(list(allowed_set)))
        .values(status=AuditSession.status)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return
    db.refresh(session)
    ensure_session_status(session, allowed_set, action)
    raise PreconditionError(
        f"Cannot {action}: audit {session_label(session)} changed concurrently.",
        status=session.status.value,
    )

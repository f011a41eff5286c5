"""Audit action log helpers."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from stockaudit.models import AuditActionLog, AuditActionType, User


def log_action(
    db: Session,
    *,
    session_id: int,
    actor: User,
    action_type: AuditActionType,
    verification_id: int | None = None,
    notes: str | None = None,
    details: dict[str, Any] | None = None,
) -> AuditActionLog:
    """Append an entry to the caller's unit of work; the caller commits."""
    entry = AuditActionLog(
        session_id=session_id,
        verification_id=verification_id,
        performer_id=actor.id,
        action_type=action_type,
        notes=notes,
        details=details,
    )
    db.add(entry)
    return entry


def list_logs(
    db: Session,
    session_id: int,
    *,
    performer_id: int | None = None,
    action_type: AuditActionType | None = None,
) -> list[AuditActionLog]:
    query = (
        select(AuditActionLog)
        .options(joinedload(AuditActionLog.performer))
        .where(AuditActionLog.session_id == session_id)
    )
    if performer_id is not None:
        query = query.where(AuditActionLog.performer_id == performer_id)
    if action_type is not None:
        query = query.where(AuditActionLog.action_type == action_type)
    return list(db.scalars(query.order_by(AuditActionLog.performed_at, AuditActionLog.id)).all())

"""Audit team assignments: which counters may count which warehouse."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from stockaudit.core.errors import ConflictError, NotFoundError, ValidationError
from stockaudit.core.permissions import Capability, ensure_capability
from stockaudit.db.session import unit_of_work
from stockaudit.models import AuditTeamMember, User
from stockaudit.services.inventory_service import get_active_warehouse
from stockaudit.services.user_service import get_user_by_id

logger = logging.getLogger(__name__)


def list_members(db: Session, actor: User, warehouse_id: int | None = None) -> list[AuditTeamMember]:
    ensure_capability(actor, Capability.CAN_FINALIZE)
    query = select(AuditTeamMember).options(
        joinedload(AuditTeamMember.user),
        joinedload(AuditTeamMember.warehouse),
    )
    if warehouse_id is not None:
        query = query.where(AuditTeamMember.warehouse_id == warehouse_id)
    return list(db.scalars(query.order_by(AuditTeamMember.warehouse_id, AuditTeamMember.id)).all())


def assign_member(db: Session, actor: User, *, user_id: int, warehouse_id: int) -> AuditTeamMember:
    """Assign an audit user to count a warehouse."""
    ensure_capability(actor, Capability.CAN_FINALIZE)
    user = get_user_by_id(db, user_id)
    if user is None or not user.is_active:
        raise NotFoundError(f"User {user_id} not found.", user_id=user_id)
    if user.role != "AUDIT_USER":
        raise ValidationError("Only audit users can be assigned to an audit team.", role=user.role)
    get_active_warehouse(db, warehouse_id)

    member = AuditTeamMember(manager_id=actor.id, user_id=user_id, warehouse_id=warehouse_id)
    try:
        with unit_of_work(db):
            db.add(member)
    except IntegrityError as exc:
        raise ConflictError(
            f"User {user.username} is already assigned to warehouse {warehouse_id}.",
            user_id=user_id,
            warehouse_id=warehouse_id,
        ) from exc

    db.refresh(member)
    logger.info("[AUDIT] user_id=%s assigned to warehouse %s by user_id=%s", user_id, warehouse_id, actor.id)
    return member


def remove_member(db: Session, actor: User, member_id: int) -> None:
    ensure_capability(actor, Capability.CAN_FINALIZE)
    member = db.get(AuditTeamMember, member_id)
    if member is None:
        raise NotFoundError(f"Team member {member_id} not found.", member_id=member_id)
    with unit_of_work(db):
        db.delete(member)
    logger.info("[AUDIT] team member %s removed by user_id=%s", member_id, actor.id)

"""Warehouse freeze lock: one row per frozen warehouse."""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockaudit.core.errors import ConflictError, WarehouseFrozenError
from stockaudit.models import AuditSession, WarehouseFreeze

logger = logging.getLogger(__name__)


def get_freeze(db: Session, warehouse_id: int) -> WarehouseFreeze | None:
    return db.get(WarehouseFreeze, warehouse_id)


def is_frozen(db: Session, warehouse_id: int) -> bool:
    return get_freeze(db, warehouse_id) is not None


def acquire_freeze(db: Session, session: AuditSession) -> WarehouseFreeze:
    """Insert the freeze row; the primary key on warehouse_id makes it exclusive."""
    existing = get_freeze(db, session.warehouse_id)
    if existing is not None:
        if existing.session_id == session.id:
            return existing
        raise _already_frozen(db, existing)

    freeze = WarehouseFreeze(warehouse_id=session.warehouse_id, session_id=session.id)
    db.add(freeze)
    try:
        db.flush()
    except IntegrityError as exc:
        # Lost the race to another session freezing the same warehouse.
        raise ConflictError(
            f"Warehouse {session.warehouse_id} is already frozen by another audit.",
            warehouse_id=session.warehouse_id,
        ) from exc

    logger.info("[FREEZE] Warehouse %s frozen by audit session %s", session.warehouse_id, session.id)
    return freeze


def release_freeze(db: Session, session: AuditSession) -> bool:
    """Delete the freeze held by this session. Returns False if it held none."""
    result = db.execute(
        delete(WarehouseFreeze).where(
            WarehouseFreeze.warehouse_id == session.warehouse_id,
            WarehouseFreeze.session_id == session.id,
        )
    )
    released = result.rowcount == 1
    if released:
        logger.info("[FREEZE] Warehouse %s released by audit session %s", session.warehouse_id, session.id)
    else:
        logger.warning("[FREEZE] Audit session %s held no freeze on warehouse %s", session.id, session.warehouse_id)
    return released


def ensure_not_frozen(db: Session, warehouse_id: int, audit_session_id: int | None = None) -> None:
    """Reject ordinary writes against a frozen warehouse.

    A write carrying the id of the session that holds the freeze passes through.
    """
    freeze = get_freeze(db, warehouse_id)
    if freeze is None or (audit_session_id is not None and freeze.session_id == audit_session_id):
        return
    raise WarehouseFrozenError(
        f"Warehouse {warehouse_id} is frozen for an audit; transactions are blocked until it completes.",
        warehouse_id=warehouse_id,
        audit_session_id=freeze.session_id,
    )


def _already_frozen(db: Session, freeze: WarehouseFreeze) -> ConflictError:
    audit_code = db.scalar(select(AuditSession.audit_code).where(AuditSession.id == freeze.session_id))
    return ConflictError(
        f"Warehouse {freeze.warehouse_id} is already frozen by audit {audit_code or freeze.session_id}.",
        warehouse_id=freeze.warehouse_id,
        audit_session_id=freeze.session_id,
    )

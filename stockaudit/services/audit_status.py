"""Audit session and verification status transition helpers."""

from __future__ import annotations

from datetime import datetime

from stockaudit.models.audit import AuditSessionStatus, VerificationStatus

ACTIVE_SESSION_STATUSES: frozenset[AuditSessionStatus] = frozenset(
    {AuditSessionStatus.OPEN, AuditSessionStatus.IN_PROGRESS, AuditSessionStatus.RECONCILIATION}
)
TERMINAL_SESSION_STATUSES: frozenset[AuditSessionStatus] = frozenset(
    {AuditSessionStatus.COMPLETED, AuditSessionStatus.CANCELLED}
)

ALLOWED_TRANSITIONS: dict[AuditSessionStatus, set[AuditSessionStatus]] = {
    AuditSessionStatus.OPEN: {AuditSessionStatus.IN_PROGRESS, AuditSessionStatus.CANCELLED},
    AuditSessionStatus.IN_PROGRESS: {AuditSessionStatus.RECONCILIATION, AuditSessionStatus.CANCELLED},
    AuditSessionStatus.RECONCILIATION: {AuditSessionStatus.COMPLETED, AuditSessionStatus.CANCELLED},
    AuditSessionStatus.COMPLETED: set(),
    AuditSessionStatus.CANCELLED: set(),
}


def can_transition(current: AuditSessionStatus, new: AuditSessionStatus) -> bool:
    """Return whether a session can move from current to new status."""
    return new in ALLOWED_TRANSITIONS.get(current, set())


def is_terminal(status: AuditSessionStatus) -> bool:
    return status in TERMINAL_SESSION_STATUSES


def transition_values(new_status: AuditSessionStatus, now: datetime) -> dict[str, object]:
    """Column values written together with a status change."""
    values: dict[str, object] = {"status": new_status, "status_updated_at": now}
    if new_status == AuditSessionStatus.COMPLETED:
        values["completed_at"] = now
    elif new_status == AuditSessionStatus.CANCELLED:
        values["cancelled_at"] = now
    return values


def classify_discrepancy(discrepancy: int) -> VerificationStatus:
    """Map physical minus system quantity onto a reconciliation status."""
    if discrepancy == 0:
        return VerificationStatus.COMPLETE
    if discrepancy < 0:
        return VerificationStatus.SHORT
    return VerificationStatus.EXCESS

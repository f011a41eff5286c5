"""Role to capability mapping for audit operations."""

from __future__ import annotations

from enum import Enum

from stockaudit.core.errors import AuthorizationError
from stockaudit.models.user import User


class Capability(str, Enum):
    CAN_CONFIRM = "canConfirm"
    CAN_OVERRIDE = "canOverride"
    CAN_RECONCILE = "canReconcile"
    CAN_FINALIZE = "canFinalize"


ALL_CAPABILITIES: frozenset[Capability] = frozenset(Capability)

ROLE_CAPABILITIES: dict[str, frozenset[Capability]] = {
    "ADMIN": ALL_CAPABILITIES,
    "AUDIT_MANAGER": ALL_CAPABILITIES,
    "AUDIT_USER": frozenset({Capability.CAN_CONFIRM}),
    "MANAGER": frozenset(),
    "EMPLOYEE": frozenset(),
}


def capabilities_for(user: User) -> frozenset[Capability]:
    """Return capabilities granted to the user's role; inactive users get none."""
    if not user.is_active:
        return frozenset()
    return ROLE_CAPABILITIES.get(str(user.role or "").upper(), frozenset())


def has_capability(user: User, capability: Capability) -> bool:
    return capability in capabilities_for(user)


def is_privileged(user: User) -> bool:
    """Audit managers and admins may override locked rows."""
    return has_capability(user, Capability.CAN_OVERRIDE)


def ensure_capability(user: User, capability: Capability) -> None:
    """Reject the call unless the user's role grants the capability."""
    if not has_capability(user, capability):
        raise AuthorizationError(
            f"Role {user.role} is not allowed to perform this action ({capability.value} required).",
            required=capability.value,
        )

"""Role to capability mapping tests."""

import pytest

from stockaudit.core.errors import AuthorizationError
from stockaudit.core.permissions import Capability, capabilities_for, ensure_capability, is_privileged
from stockaudit.core.security import require_capability
from stockaudit.models.user import User, normalize_user_role


@pytest.mark.parametrize(
    ("role", "expected"),
    [
        ("ADMIN", set(Capability)),
        ("AUDIT_MANAGER", set(Capability)),
        ("AUDIT_USER", {Capability.CAN_CONFIRM}),
        ("MANAGER", set()),
        ("EMPLOYEE", set()),
    ],
)
def test_capabilities_for_role(role: str, expected: set[Capability]) -> None:
    user = User(username=role.lower(), password_hash="x", role=role, is_active=True)
    assert set(capabilities_for(user)) == expected


def test_inactive_user_has_no_capabilities() -> None:
    user = User(username="gone", password_hash="x", role="ADMIN", is_active=False)
    assert capabilities_for(user) == frozenset()
    assert not is_privileged(user)


def test_ensure_capability_reports_required_capability() -> None:
    user = User(username="counter", password_hash="x", role="AUDIT_USER", is_active=True)

    with pytest.raises(AuthorizationError) as excinfo:
        ensure_capability(user, Capability.CAN_RECONCILE)

    assert excinfo.value.to_payload()["required"] == "canReconcile"
    assert excinfo.value.status_code == 403


def test_normalize_user_role() -> None:
    assert normalize_user_role(" audit_user ") == "AUDIT_USER"
    with pytest.raises(ValueError):
        normalize_user_role("customer")


def test_require_capability_dependency_admits_only_granted_roles() -> None:
    manager = User(username="auditmgr", password_hash="x", role="AUDIT_MANAGER", is_active=True)
    counter = User(username="counter", password_hash="x", role="AUDIT_USER", is_active=True)
    finalizer = require_capability(Capability.CAN_FINALIZE)

    assert finalizer(current_user=manager) is manager
    with pytest.raises(AuthorizationError) as excinfo:
        finalizer(current_user=counter)
    assert excinfo.value.context["required"] == "canFinalize"

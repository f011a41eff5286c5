"""Audit team assignment tests."""

import pytest

from stockaudit.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from stockaudit.services import audit_team_service, verification_service
from stockaudit.services.session_guards import is_assigned_counter


def test_assign_member_lets_counter_count_the_warehouse(db, world, start_audit) -> None:
    member = audit_team_service.assign_member(
        db,
        world.manager,
        user_id=world.outsider.id,
        warehouse_id=world.warehouse.id,
    )

    assert member.manager_id == world.manager.id
    assert is_assigned_counter(db, world.outsider.id, world.warehouse.id)

    session = start_audit()
    row = session.verifications[0]
    confirmed = verification_service.confirm(db, world.outsider, row.id, physical_quantity=10)
    assert confirmed.confirmed_by == world.outsider.id


def test_assign_member_rejects_duplicates(db, world) -> None:
    with pytest.raises(ConflictError, match="already assigned"):
        audit_team_service.assign_member(db, world.manager, user_id=world.counter.id, warehouse_id=world.warehouse.id)


def test_assign_member_only_accepts_audit_users(db, world) -> None:
    with pytest.raises(ValidationError, match="Only audit users"):
        audit_team_service.assign_member(db, world.manager, user_id=world.employee.id, warehouse_id=world.warehouse.id)
    with pytest.raises(NotFoundError):
        audit_team_service.assign_member(db, world.manager, user_id=9999, warehouse_id=world.warehouse.id)


def test_team_management_requires_finalize_capability(db, world) -> None:
    with pytest.raises(AuthorizationError):
        audit_team_service.list_members(db, world.counter)


def test_remove_member_revokes_counting_rights(db, world) -> None:
    members = audit_team_service.list_members(db, world.manager, world.warehouse.id)
    assert [member.user.username for member in members] == ["counter"]

    audit_team_service.remove_member(db, world.manager, members[0].id)

    assert not is_assigned_counter(db, world.counter.id, world.warehouse.id)
    with pytest.raises(NotFoundError):
        audit_team_service.remove_member(db, world.manager, members[0].id)

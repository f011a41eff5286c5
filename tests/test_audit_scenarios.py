"""Walk one warehouse audit from creation to cancellation, step by step."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from stockaudit.core.errors import PreconditionError
from stockaudit.models import (
    AuditActionLog,
    AuditActionType,
    AuditSessionStatus,
    AuditVerification,
    Inventory,
    Transaction,
    VerificationStatus,
    Warehouse,
)
from stockaudit.services import audit_session_service, reconciliation_service, verification_service
from stockaudit.services.freeze_service import get_freeze, is_frozen
from stockaudit.services.ledger_service import TransactionLedger
from stockaudit.utils.time import utc_now


@pytest.fixture()
def scenario_warehouse(db, world) -> Warehouse:
    warehouse = Warehouse(name="Scenario Store", is_active=True)
    db.add(warehouse)
    db.flush()
    for item, quantity in zip(world.items, (10, 0, 5)):
        db.add(Inventory(item_id=item.id, warehouse_id=warehouse.id, quantity=quantity))
    db.add(
        Transaction(
            transaction_code="CI-HISTORY01",
            transaction_type="check-in",
            item_id=world.items[1].id,
            quantity=4,
            destination_warehouse_id=world.other_warehouse.id,
            status="completed",
            rate=Decimal("2.50"),
            created_at=utc_now(),
        )
    )
    db.commit()
    return warehouse


def _rows(db, session_id: int) -> list[AuditVerification]:
    return list(
        db.scalars(
            select(AuditVerification)
            .where(AuditVerification.session_id == session_id)
            .order_by(AuditVerification.serial_number)
        ).all()
    )


def test_audit_walkthrough(db, world, scenario_warehouse) -> None:
    manager = world.manager

    # A: create with the freeze confirmed.
    session = audit_session_service.create_session(
        db,
        manager,
        warehouse_id=scenario_warehouse.id,
        title="January count",
        start_date=date(2026, 1, 1),
        end_date=date(2026, 1, 5),
        freeze_confirmed=True,
    )
    assert session.status == AuditSessionStatus.OPEN
    assert session.audit_code
    assert get_freeze(db, scenario_warehouse.id).session_id == session.id

    # B: counting snapshots the on-hand quantities.
    audit_session_service.update_status(db, manager, session.id, AuditSessionStatus.IN_PROGRESS)
    rows = _rows(db, session.id)
    assert [row.system_quantity for row in rows] == [10, 0, 5]
    assert all(row.status == VerificationStatus.PENDING for row in rows)

    # C: count and classify.
    for row, counted in zip(rows, (10, 2, 5)):
        verification_service.confirm(db, manager, row.id, physical_quantity=counted)
    audit_session_service.start_reconciliation(db, manager, session.id)
    rows = _rows(db, session.id)
    assert [row.status for row in rows] == [
        VerificationStatus.COMPLETE,
        VerificationStatus.EXCESS,
        VerificationStatus.COMPLETE,
    ]
    assert rows[1].discrepancy == 2

    # E: completion is refused while item 2 is still excess.
    with pytest.raises(PreconditionError) as excinfo:
        audit_session_service.complete_session(db, manager, session.id)
    assert excinfo.value.context["discrepancy_count"] == 1

    # D: recon check-in at the last check-in rate closes item 2.
    resolved = reconciliation_service.recon_checkin(
        db,
        manager,
        session.id,
        verification_id=rows[1].id,
        quantity=2,
        notes="found extra",
    )
    assert resolved.system_quantity == 2
    assert resolved.status == VerificationStatus.COMPLETE
    checkin = db.scalar(select(Transaction).where(Transaction.audit_session_id == session.id))
    assert checkin.transaction_type == "check-in"
    assert checkin.quantity == 2
    assert checkin.rate == Decimal("2.50")

    # F: cancel from reconciliation keeps every row as it was.
    before = [(row.id, row.status) for row in _rows(db, session.id)]
    cancelled = audit_session_service.cancel_session(db, manager, session.id)
    assert cancelled.status == AuditSessionStatus.CANCELLED
    assert not is_frozen(db, scenario_warehouse.id)
    assert [(row.id, row.status) for row in _rows(db, session.id)] == before
    cancel_entries = db.scalars(
        select(AuditActionLog).where(
            AuditActionLog.session_id == session.id,
            AuditActionLog.action_type == AuditActionType.CANCEL,
        )
    ).all()
    assert len(cancel_entries) == 1


def test_ordinary_writes_resume_after_completion(db, world, reconciling_audit) -> None:
    rows = _rows(db, reconciling_audit.id)
    reconciliation_service.recon_checkout(db, world.manager, reconciling_audit.id, verification_id=rows[0].id, quantity=1)
    reconciliation_service.recon_checkout(db, world.manager, reconciling_audit.id, verification_id=rows[0].id, quantity=2)
    reconciliation_service.recon_checkin(db, world.manager, reconciling_audit.id, verification_id=rows[1].id, quantity=2)
    audit_session_service.complete_session(db, world.manager, reconciling_audit.id)

    ledger = TransactionLedger(db)
    ledger.record_check_out(
        item_id=world.items[0].id,
        warehouse_id=world.warehouse.id,
        quantity=1,
        rate=Decimal("3.00"),
        reason="sale",
        user_id=world.employee.id,
    )
    db.commit()

    assert ledger.inventory.get_on_hand_quantity(world.warehouse.id, world.items[0].id) == 6
    recon_writes = db.scalars(
        select(Transaction).where(Transaction.audit_session_id == reconciling_audit.id)
    ).all()
    assert len(recon_writes) == 3

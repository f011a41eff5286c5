"""Shared fixtures: a file-backed SQLite database seeded with one audited warehouse."""

from dataclasses import dataclass
from datetime import date
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from stockaudit.core.security import get_password_hash
from stockaudit.db.base import Base
from stockaudit.models import AuditSession, AuditTeamMember, Inventory, Item, User, Warehouse
from stockaudit.services import audit_session_service, verification_service

PASSWORD = "secret123"


@dataclass
class AuditWorld:
    admin: User
    manager: User
    counter: User
    outsider: User
    employee: User
    warehouse: Warehouse
    other_warehouse: Warehouse
    items: list[Item]


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


@pytest.fixture()
def engine(tmp_path: Path) -> Engine:
    engine = _build_test_engine(tmp_path / "audit.db")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_local(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_local: sessionmaker) -> Session:
    with session_local() as session:
        yield session


@pytest.fixture()
def world(db: Session) -> AuditWorld:
    """Users of every role, two warehouses and three stocked items (10, 5 and 0 on hand)."""
    password_hash = get_password_hash(PASSWORD)

    def user(username: str, role: str) -> User:
        return User(username=username, password_hash=password_hash, role=role, is_active=True)

    admin = user("admin", "ADMIN")
    manager = user("auditmgr", "AUDIT_MANAGER")
    counter = user("counter", "AUDIT_USER")
    outsider = user("outsider", "AUDIT_USER")
    employee = user("clerk", "EMPLOYEE")
    warehouse = Warehouse(name="Main Store", location="Dock 1", is_active=True)
    other_warehouse = Warehouse(name="Overflow", location="Dock 2", is_active=True)
    items = [
        Item(sku="SKU-001", name="Steel bolt", unit="pcs"),
        Item(sku="SKU-002", name="Hex nut", unit="pcs"),
        Item(sku="SKU-003", name="Washer", unit="pcs"),
    ]
    db.add_all([admin, manager, counter, outsider, employee, warehouse, other_warehouse, *items])
    db.flush()
    for item, quantity in zip(items, (10, 5, 0)):
        db.add(Inventory(item_id=item.id, warehouse_id=warehouse.id, quantity=quantity))
    db.add(Inventory(item_id=items[0].id, warehouse_id=other_warehouse.id, quantity=3))
    db.add(AuditTeamMember(manager_id=manager.id, user_id=counter.id, warehouse_id=warehouse.id))
    db.commit()
    return AuditWorld(
        admin=admin,
        manager=manager,
        counter=counter,
        outsider=outsider,
        employee=employee,
        warehouse=warehouse,
        other_warehouse=other_warehouse,
        items=items,
    )


@pytest.fixture()
def audit_dates() -> tuple[date, date]:
    return date(2026, 10, 1), date(2026, 10, 31)


@pytest.fixture()
def start_audit(db: Session, world: AuditWorld, audit_dates: tuple[date, date]):
    """Factory opening an audit on the main warehouse, counting started by default."""

    def _start(*, begin: bool = True, warehouse: Warehouse | None = None) -> AuditSession:
        start, end = audit_dates
        session = audit_session_service.create_session(
            db,
            world.manager,
            warehouse_id=(warehouse or world.warehouse).id,
            title="Q4 cycle count",
            start_date=start,
            end_date=end,
            freeze_confirmed=True,
        )
        if begin:
            session = audit_session_service.begin_counting(db, world.manager, session.id)
        return session

    return _start


@pytest.fixture()
def reconciling_audit(db: Session, world: AuditWorld, start_audit) -> AuditSession:
    """Audit in reconciliation: first item short by 3, second excess by 2, third complete."""
    session = start_audit()
    views = verification_service.list_verifications(db, world.manager, session.id)
    for view, physical_quantity in zip(views, (7, 7, 0)):
        verification_service.confirm(db, world.counter, view.verification.id, physical_quantity=physical_quantity)
    return audit_session_service.start_reconciliation(db, world.manager, session.id)

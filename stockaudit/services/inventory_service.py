"""Inventory snapshot provider backed by the on-hand stock table."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from stockaudit.core.errors import NotFoundError
from stockaudit.models import Inventory, Warehouse


@dataclass(frozen=True)
class OnHandLine:
    item_id: int
    quantity: int


class InventorySnapshotProvider:
    """Supplies current system quantities for items in a warehouse."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_on_hand_quantity(self, warehouse_id: int, item_id: int) -> int:
        row = self._row(warehouse_id, item_id)
        return row.quantity if row is not None else 0

    def list_on_hand(self, warehouse_id: int) -> list[OnHandLine]:
        """Every item stocked in the warehouse, zero quantities included, by item id."""
        rows = self.db.scalars(
            select(Inventory).where(Inventory.warehouse_id == warehouse_id).order_by(Inventory.item_id)
        ).all()
        return [OnHandLine(item_id=row.item_id, quantity=row.quantity) for row in rows]

    def adjust(self, warehouse_id: int, item_id: int, delta: int) -> int:
        """Apply a quantity delta, creating the stock row on first check-in."""
        row = self._row(warehouse_id, item_id)
        if row is None:
            row = Inventory(item_id=item_id, warehouse_id=warehouse_id, quantity=0)
            self.db.add(row)
        row.quantity = row.quantity + delta
        self.db.flush()
        return row.quantity

    def _row(self, warehouse_id: int, item_id: int) -> Inventory | None:
        return self.db.scalar(
            select(Inventory)
            .where(Inventory.warehouse_id == warehouse_id, Inventory.item_id == item_id)
            .limit(1)
        )


def get_active_warehouse(db: Session, warehouse_id: int) -> Warehouse:
    warehouse = db.get(Warehouse, warehouse_id)
    if warehouse is None or not warehouse.is_active:
        raise NotFoundError(f"Warehouse {warehouse_id} not found.", warehouse_id=warehouse_id)
    return warehouse

"""Transaction ledger seam: check-in / check-out writes and pending lookups."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from stockaudit.core.errors import ValidationError
from stockaudit.models import Transaction
from stockaudit.services.freeze_service import ensure_not_frozen
from stockaudit.services.inventory_service import InventorySnapshotProvider
from stockaudit.utils.time import utc_now

logger = logging.getLogger(__name__)

CODE_PREFIXES: dict[str, str] = {"check-in": "CI", "check-out": "CO", "transfer": "TR"}


@dataclass
class PendingTransactions:
    checkouts: list[Transaction] = field(default_factory=list)
    checkins: list[Transaction] = field(default_factory=list)
    transfers: list[Transaction] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.checkouts) + len(self.checkins) + len(self.transfers)


class TransactionLedger:
    """Writes completed stock movements and answers pending-transaction queries.

    Ordinary writes against a frozen warehouse are rejected; writes made on
    behalf of the audit session holding the freeze pass through.
    """

    def __init__(self, db: Session, inventory: InventorySnapshotProvider | None = None) -> None:
        self.db = db
        self.inventory = inventory or InventorySnapshotProvider(db)

    def record_check_in(
        self,
        *,
        item_id: int,
        warehouse_id: int,
        quantity: int,
        rate: Decimal | None,
        reason: str | None,
        user_id: int | None = None,
        audit_session_id: int | None = None,
    ) -> int:
        """Receive stock into the warehouse; returns the transaction id."""
        self._validate_quantity(quantity)
        ensure_not_frozen(self.db, warehouse_id, audit_session_id)
        transaction = self._write(
            transaction_type="check-in",
            item_id=item_id,
            quantity=quantity,
            destination_warehouse_id=warehouse_id,
            rate=rate,
            reason=reason,
            user_id=user_id,
            audit_session_id=audit_session_id,
        )
        self.inventory.adjust(warehouse_id, item_id, quantity)
        return transaction.id

    def record_check_out(
        self,
        *,
        item_id: int,
        warehouse_id: int,
        quantity: int,
        rate: Decimal | None,
        reason: str | None,
        user_id: int | None = None,
        audit_session_id: int | None = None,
    ) -> int:
        """Issue stock out of the warehouse; returns the transaction id."""
        self._validate_quantity(quantity)
        ensure_not_frozen(self.db, warehouse_id, audit_session_id)
        on_hand = self.inventory.get_on_hand_quantity(warehouse_id, item_id)
        if on_hand < quantity:
            raise ValidationError(
                f"Cannot check out {quantity} units; only {on_hand} on hand.",
                on_hand=on_hand,
            )
        transaction = self._write(
            transaction_type="check-out",
            item_id=item_id,
            quantity=quantity,
            source_warehouse_id=warehouse_id,
            rate=rate,
            reason=reason,
            user_id=user_id,
            audit_session_id=audit_session_id,
        )
        self.inventory.adjust(warehouse_id, item_id, -quantity)
        return transaction.id

    def list_pending(self, warehouse_id: int) -> PendingTransactions:
        """Pending check-ins, check-outs and transfers touching the warehouse."""
        rows = self.db.scalars(
            select(Transaction)
            .where(
                Transaction.status == "pending",
                or_(
                    Transaction.source_warehouse_id == warehouse_id,
                    Transaction.destination_warehouse_id == warehouse_id,
                ),
            )
            .order_by(Transaction.created_at, Transaction.id)
        ).all()
        pending = PendingTransactions()
        for row in rows:
            if row.transaction_type == "check-in":
                pending.checkins.append(row)
            elif row.transaction_type == "check-out":
                pending.checkouts.append(row)
            else:
                pending.transfers.append(row)
        return pending

    def last_rate(self, item_id: int, transaction_type: str) -> Decimal:
        """Rate of the most recent completed movement of that type, or zero."""
        rate = self.db.scalar(
            select(Transaction.rate)
            .where(
                Transaction.item_id == item_id,
                Transaction.transaction_type == transaction_type,
                Transaction.status == "completed",
                Transaction.rate.is_not(None),
            )
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .limit(1)
        )
        return rate if rate is not None else Decimal("0.00")

    def last_check_in_rate(self, item_id: int) -> Decimal:
        return self.last_rate(item_id, "check-in")

    def last_check_out_rate(self, item_id: int) -> Decimal:
        return self.last_rate(item_id, "check-out")

    def _write(self, *, transaction_type: str, **values: object) -> Transaction:
        now = utc_now()
        transaction = Transaction(
            transaction_code=f"{CODE_PREFIXES[transaction_type]}-{uuid4().hex[:10].upper()}",
            transaction_type=transaction_type,
            status="completed",
            created_at=now,
            completed_at=now,
            **values,
        )
        self.db.add(transaction)
        self.db.flush()
        logger.info(
            "[LEDGER] %s %s item=%s qty=%s audit_session=%s",
            transaction.transaction_code,
            transaction_type,
            transaction.item_id,
            transaction.quantity,
            transaction.audit_session_id,
        )
        return transaction

    @staticmethod
    def _validate_quantity(quantity: int) -> None:
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than zero.", quantity=quantity)

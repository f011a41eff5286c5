"""Application models package."""

from stockaudit.models.audit import (
    AuditActionLog,
    AuditActionType,
    AuditSession,
    AuditSessionStatus,
    AuditTeamMember,
    AuditVerification,
    VerificationStatus,
    WarehouseFreeze,
)
from stockaudit.models.inventory import Inventory, Item, Warehouse
from stockaudit.models.ledger import Transaction
from stockaudit.models.user import User

__all__ = [
    "User", "Warehouse", "Item", "Inventory", "Transaction",
    "AuditSession", "AuditSessionStatus", "AuditVerification", "VerificationStatus",
    "AuditActionLog", "AuditActionType", "AuditTeamMember", "WarehouseFreeze",
]

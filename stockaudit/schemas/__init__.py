"""Schema exports."""

from stockaudit.schemas.audit import (
    ActionLogRead,
    AuditSessionCreate,
    AuditSessionRead,
    AuditSessionStatusUpdate,
    CanCompleteRead,
    CancelRequest,
    CompleteRequest,
    ConfirmRequest,
    ExtendRequest,
    LockRequest,
    OverrideRequest,
    PendingTransactionsRead,
    QuickEditRequest,
    ReconActionRequest,
    TransactionRead,
    VerificationRead,
)
from stockaudit.schemas.auth import AuthUserResponse, LoginRequest, TokenResponse
from stockaudit.schemas.team import TeamMemberCreate, TeamMemberRead

__all__ = [
    "ActionLogRead",
    "AuditSessionCreate",
    "AuditSessionRead",
    "AuditSessionStatusUpdate",
    "AuthUserResponse",
    "CanCompleteRead",
    "CancelRequest",
    "CompleteRequest",
    "ConfirmRequest",
    "ExtendRequest",
    "LockRequest",
    "LoginRequest",
    "OverrideRequest",
    "PendingTransactionsRead",
    "QuickEditRequest",
    "ReconActionRequest",
    "TeamMemberCreate",
    "TeamMemberRead",
    "TokenResponse",
    "TransactionRead",
    "VerificationRead",
]

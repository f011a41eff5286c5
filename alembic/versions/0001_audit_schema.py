"""audit schema

Revision ID: 0001_audit_schema
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_audit_schema"
down_revision = None
branch_labels = None
depends_on = None

USER_ROLES = ("ADMIN", "MANAGER", "EMPLOYEE", "AUDIT_MANAGER", "AUDIT_USER")
SESSION_STATUSES = ("open", "in_progress", "reconciliation", "completed", "cancelled")
VERIFICATION_STATUSES = ("pending", "confirmed", "complete", "short", "excess")
ACTION_TYPES = (
    "create",
    "begin-counting",
    "confirm",
    "override",
    "lock",
    "unlock",
    "recon-checkin",
    "recon-checkout",
    "start-reconciliation",
    "complete",
    "cancel",
    "extend",
)


def _string_enum(values: tuple[str, ...], name: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, length=32)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=128), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.Enum(*USER_ROLES, name="user_role"), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_table(
        "warehouses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
    )
    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sku", sa.String(length=64), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("unit", sa.String(length=32), nullable=False, server_default="pcs"),
    )
    op.create_table(
        "inventory",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("uq_inventory_item_warehouse", "inventory", ["item_id", "warehouse_id"], unique=True)
    op.create_table(
        "audit_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("audit_code", sa.String(length=32), nullable=True, unique=True),
        sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("status", _string_enum(SESSION_STATUSES, "audit_session_status"), nullable=False),
        sa.Column("creator_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_audit_sessions_warehouse_id", "audit_sessions", ["warehouse_id"])
    op.create_table(
        "warehouse_freezes",
        sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id"), primary_key=True),
        sa.Column("session_id", sa.Integer(), sa.ForeignKey("audit_sessions.id"), nullable=False, unique=True),
        sa.Column("frozen_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "audit_verifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("session_id", sa.Integer(), sa.ForeignKey("audit_sessions.id"), nullable=False),
        sa.Column("serial_number", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("batch_number", sa.String(length=64), nullable=True),
        sa.Column("system_quantity", sa.Integer(), nullable=False),
        sa.Column("physical_quantity", sa.Integer(), nullable=True),
        sa.Column("discrepancy", sa.Integer(), nullable=True),
        sa.Column("status", _string_enum(VERIFICATION_STATUSES, "verification_status"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("confirmed_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("locked_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("override_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("override_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("override_notes", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "uq_audit_verifications_session_item_batch",
        "audit_verifications",
        ["session_id", "item_id", "batch_number"],
        unique=True,
    )
    op.create_index(
        "uq_audit_verifications_session_serial",
        "audit_verifications",
        ["session_id", "serial_number"],
        unique=True,
    )
    op.create_table(
        "audit_action_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("session_id", sa.Integer(), sa.ForeignKey("audit_sessions.id"), nullable=False),
        sa.Column("verification_id", sa.Integer(), sa.ForeignKey("audit_verifications.id"), nullable=True),
        sa.Column("performer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("action_type", _string_enum(ACTION_TYPES, "audit_action_type"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("performed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_action_logs_session_id", "audit_action_logs", ["session_id"])
    op.create_table(
        "audit_team_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("manager_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("uq_audit_team_user_warehouse", "audit_team_members", ["user_id", "warehouse_id"], unique=True)
    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("transaction_code", sa.String(length=32), nullable=False, unique=True),
        sa.Column("transaction_type", sa.Enum("check-in", "check-out", "transfer", name="transaction_type"), nullable=False),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("source_warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id"), nullable=True),
        sa.Column("destination_warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id"), nullable=True),
        sa.Column(
            "status",
            sa.Enum("pending", "completed", "rejected", "cancelled", name="transaction_status"),
            nullable=False,
            server_default="completed",
        ),
        sa.Column("rate", sa.Numeric(12, 2), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("audit_session_id", sa.Integer(), sa.ForeignKey("audit_sessions.id"), nullable=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("transactions")
    op.drop_index("uq_audit_team_user_warehouse", table_name="audit_team_members")
    op.drop_table("audit_team_members")
    op.drop_index("ix_audit_action_logs_session_id", table_name="audit_action_logs")
    op.drop_table("audit_action_logs")
    op.drop_index("uq_audit_verifications_session_serial", table_name="audit_verifications")
    op.drop_index("uq_audit_verifications_session_item_batch", table_name="audit_verifications")
    op.drop_table("audit_verifications")
    op.drop_table("warehouse_freezes")
    op.drop_index("ix_audit_sessions_warehouse_id", table_name="audit_sessions")
    op.drop_table("audit_sessions")
    op.drop_index("uq_inventory_item_warehouse", table_name="inventory")
    op.drop_table("inventory")
    op.drop_table("items")
    op.drop_table("warehouses")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")

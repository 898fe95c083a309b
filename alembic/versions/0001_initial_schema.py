"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-17 09:00:00

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

QTY = sa.Numeric(12, 3)
MONEY = sa.Numeric(12, 2)

role_name = sa.Enum(
    "ADMIN", "SITE_ENGINEER", "DIOCESAN_SITE_ENGINEER", "PADIRI", "STOREKEEPER", "PROCUREMENT",
    name="role_name",
)
assignment_status = sa.Enum("ACTIVE", "INACTIVE", name="assignment_status")
request_status = sa.Enum(
    "PENDING", "SUBMITTED", "DSE_REVIEW", "WAITING_PADIRI_REVIEW", "APPROVED", "VERIFIED",
    "ISSUED_FROM_APPROVED", "PARTIALLY_ISSUED", "ISSUED", "RECEIVED", "REJECTED", "CLOSED",
    name="request_status",
)
approval_level = sa.Enum("DSE", "PADIRI", name="approval_level")
approval_action = sa.Enum(
    "APPROVED", "REJECTED", "VERIFIED", "MODIFIED", "NEEDS_CHANGES", name="approval_action"
)
movement_type = sa.Enum("IN", "OUT", "ADJUSTMENT", name="movement_type")
movement_source_type = sa.Enum("GRN", "ISSUE", "ADJUSTMENT", name="movement_source_type")
# stock_history reuses the type created with stock_movements
movement_type_again = sa.Enum("IN", "OUT", "ADJUSTMENT", name="movement_type").with_variant(
    postgresql.ENUM("IN", "OUT", "ADJUSTMENT", name="movement_type", create_type=False), "postgresql"
)
po_status = sa.Enum("DRAFT", "SENT", "RECEIVED", "CANCELLED", name="po_status")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime()),
    ]


def upgrade() -> None:
    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", role_name, nullable=False, unique=True),
    )
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id"), nullable=False),
        sa.Column("full_name", sa.String(150), nullable=False),
        sa.Column("email", sa.String(150), nullable=False),
        sa.Column("phone", sa.String(30)),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("first_login", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "sites",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(50), unique=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("location", sa.String(255)),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_table(
        "site_assignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("site_id", sa.Integer(), sa.ForeignKey("sites.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", assignment_status, nullable=False),
        sa.Column("assigned_by", sa.Integer(), sa.ForeignKey("users.id")),
        sa.Column("assigned_at", sa.DateTime()),
        sa.UniqueConstraint("user_id", "site_id", name="uq_site_assignment"),
    )
    op.create_table(
        "stores",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(50), nullable=False, unique=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("manager_name", sa.String(100)),
        sa.Column("contact_phone", sa.String(20)),
        sa.Column("contact_email", sa.String(100)),
        *_timestamps(),
    )
    op.create_table(
        "units",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(20), nullable=False, unique=True),
        sa.Column("name", sa.String(100), nullable=False),
    )
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("categories.id", ondelete="SET NULL")),
    )
    op.create_table(
        "materials",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(50), unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("specification", sa.Text()),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id", ondelete="SET NULL")),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("unit_price", MONEY),
        sa.Column("attrs", sa.JSON().with_variant(postgresql.JSONB(), "postgresql")),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime()),
    )

    op.create_table(
        "requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("ref_no", sa.String(50), unique=True),
        sa.Column("site_id", sa.Integer(), sa.ForeignKey("sites.id"), nullable=False),
        sa.Column("requested_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", request_status, nullable=False),
        sa.Column("notes", sa.Text()),
        sa.Column("issued_at", sa.DateTime()),
        sa.Column("issued_by", sa.Integer(), sa.ForeignKey("users.id")),
        sa.Column("received_at", sa.DateTime()),
        sa.Column("received_by", sa.Integer(), sa.ForeignKey("users.id")),
        sa.Column("closed_at", sa.DateTime()),
        sa.Column("closed_by", sa.Integer(), sa.ForeignKey("users.id")),
        *_timestamps(),
    )
    op.create_index("ix_requests_site_id", "requests", ["site_id"])
    op.create_index("ix_requests_status", "requests", ["status"])
    op.create_table(
        "request_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("request_id", sa.Integer(), sa.ForeignKey("requests.id", ondelete="CASCADE"), nullable=False),
        sa.Column("material_id", sa.Integer(), sa.ForeignKey("materials.id"), nullable=False),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id"), nullable=False),
        sa.Column("qty_requested", QTY, nullable=False),
        sa.Column("qty_approved", QTY),
        sa.Column("qty_issued", QTY, nullable=False),
        sa.Column("qty_remaining", QTY, nullable=False),
        sa.Column("qty_received", QTY, nullable=False),
        sa.Column("issued_at", sa.DateTime()),
        sa.Column("issued_by", sa.Integer(), sa.ForeignKey("users.id")),
        sa.Column("received_at", sa.DateTime()),
        sa.Column("received_by", sa.Integer(), sa.ForeignKey("users.id")),
        *_timestamps(),
        sa.CheckConstraint("qty_issued >= 0", name="ck_request_items_issued_nonneg"),
        sa.CheckConstraint("qty_remaining >= 0", name="ck_request_items_remaining_nonneg"),
    )
    op.create_index("ix_request_items_request_id", "request_items", ["request_id"])
    op.create_table(
        "approvals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("request_id", sa.Integer(), sa.ForeignKey("requests.id"), nullable=False),
        sa.Column("level", approval_level, nullable=False),
        sa.Column("reviewer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("action", approval_action, nullable=False),
        sa.Column("comment", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_approvals_request_level", "approvals", ["request_id", "level"])

    op.create_table(
        "issues",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("issue_no", sa.String(50), unique=True),
        sa.Column("request_id", sa.Integer(), sa.ForeignKey("requests.id"), nullable=False),
        sa.Column("store_id", sa.Integer(), sa.ForeignKey("stores.id"), nullable=False),
        sa.Column("issued_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("issued_to", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_table(
        "issue_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("issue_id", sa.Integer(), sa.ForeignKey("issues.id", ondelete="CASCADE"), nullable=False),
        sa.Column("request_item_id", sa.Integer(), sa.ForeignKey("request_items.id"), nullable=False),
        sa.Column("material_id", sa.Integer(), sa.ForeignKey("materials.id"), nullable=False),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id"), nullable=False),
        sa.Column("qty_issued", QTY, nullable=False),
        sa.Column("unit_price", MONEY),
    )

    op.create_table(
        "stock",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("store_id", sa.Integer(), sa.ForeignKey("stores.id"), nullable=False),
        sa.Column("material_id", sa.Integer(), sa.ForeignKey("materials.id"), nullable=False),
        sa.Column("qty_on_hand", QTY, nullable=False),
        sa.Column("reorder_level", QTY),
        sa.Column("low_stock_threshold", QTY),
        sa.Column("low_stock_alert", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("store_id", "material_id", name="uq_stock_store_material"),
    )
    op.create_table(
        "stock_movements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("store_id", sa.Integer(), sa.ForeignKey("stores.id"), nullable=False),
        sa.Column("material_id", sa.Integer(), sa.ForeignKey("materials.id"), nullable=False),
        sa.Column("movement_type", movement_type, nullable=False),
        sa.Column("source_type", movement_source_type, nullable=False),
        sa.Column("source_id", sa.Integer(), nullable=False),
        sa.Column("qty", QTY, nullable=False),
        sa.Column("qty_change", QTY, nullable=False),
        sa.Column("unit_price", MONEY),
        sa.Column("notes", sa.Text()),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("qty > 0", name="ck_stock_movements_qty_positive"),
    )
    op.create_index("ix_stock_movements_key", "stock_movements", ["store_id", "material_id", "created_at"])
    op.create_table(
        "stock_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("stock_id", sa.Integer(), sa.ForeignKey("stock.id", ondelete="CASCADE"), nullable=False),
        sa.Column("movement_id", sa.Integer(), sa.ForeignKey("stock_movements.id"), nullable=False),
        sa.Column("store_id", sa.Integer(), sa.ForeignKey("stores.id"), nullable=False),
        sa.Column("material_id", sa.Integer(), sa.ForeignKey("materials.id"), nullable=False),
        sa.Column("movement_type", movement_type_again, nullable=False),
        sa.Column("qty_before", QTY, nullable=False),
        sa.Column("qty_change", QTY, nullable=False),
        sa.Column("qty_after", QTY, nullable=False),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_stock_history_stock", "stock_history", ["stock_id", "created_at"])

    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("contact", sa.String(150)),
        sa.Column("phone", sa.String(30)),
        sa.Column("email", sa.String(255)),
        sa.Column("address", sa.Text()),
        sa.Column("active", sa.Boolean(), nullable=False),
    )
    op.create_table(
        "purchase_orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("ref_no", sa.String(50), unique=True),
        sa.Column("supplier_id", sa.Integer(), sa.ForeignKey("suppliers.id"), nullable=False),
        sa.Column("request_id", sa.Integer(), sa.ForeignKey("requests.id")),
        sa.Column("status", po_status, nullable=False),
        sa.Column("total_amount", sa.Numeric(14, 2)),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_table(
        "purchase_order_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "purchase_order_id",
            sa.Integer(),
            sa.ForeignKey("purchase_orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("material_id", sa.Integer(), sa.ForeignKey("materials.id"), nullable=False),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id"), nullable=False),
        sa.Column("qty", QTY, nullable=False),
        sa.Column("unit_price", MONEY, nullable=False),
    )
    op.create_table(
        "goods_receipts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("ref_no", sa.String(50), unique=True),
        sa.Column("purchase_order_id", sa.Integer(), sa.ForeignKey("purchase_orders.id")),
        sa.Column("store_id", sa.Integer(), sa.ForeignKey("stores.id"), nullable=False),
        sa.Column("received_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("received_at", sa.DateTime()),
        sa.Column("notes", sa.Text()),
    )
    op.create_table(
        "goods_receipt_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "goods_receipt_id",
            sa.Integer(),
            sa.ForeignKey("goods_receipts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("material_id", sa.Integer(), sa.ForeignKey("materials.id"), nullable=False),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id"), nullable=False),
        sa.Column("po_item_id", sa.Integer(), sa.ForeignKey("purchase_order_items.id")),
        sa.Column("qty_received", QTY, nullable=False),
        sa.Column("unit_price", MONEY),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entity", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.Integer()),
        sa.Column("details", sa.JSON()),
        sa.Column("ip_address", sa.String(45)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity", "entity_id"])


def downgrade() -> None:
    for table in (
        "audit_logs",
        "goods_receipt_items",
        "goods_receipts",
        "purchase_order_items",
        "purchase_orders",
        "suppliers",
        "stock_history",
        "stock_movements",
        "stock",
        "issue_items",
        "issues",
        "approvals",
        "request_items",
        "requests",
        "materials",
        "categories",
        "units",
        "stores",
        "site_assignments",
        "sites",
        "users",
        "roles",
    ):
        op.drop_table(table)
    bind = op.get_bind()
    for enum in (
        po_status,
        movement_source_type,
        movement_type,
        approval_action,
        approval_level,
        request_status,
        assignment_status,
        role_name,
    ):
        enum.drop(bind, checkfirst=True)

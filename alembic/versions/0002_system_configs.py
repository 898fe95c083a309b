"""system configuration store

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-17 15:00:00

"""
from alembic import op
import sqlalchemy as sa

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None

config_type = sa.Enum("STRING", "NUMBER", "BOOLEAN", "JSON", "ARRAY", name="config_type")


def upgrade() -> None:
    op.create_table(
        "system_configs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("value", sa.Text()),
        sa.Column("type", config_type, nullable=False, server_default="STRING"),
        sa.Column("category", sa.String(50), nullable=False, server_default="GENERAL"),
        sa.Column("description", sa.Text()),
        sa.Column("is_editable", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("validation_rules", sa.JSON()),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("updated_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime()),
    )
    op.create_index("ix_system_configs_key", "system_configs", ["key"], unique=True)
    op.create_index("ix_system_configs_category", "system_configs", ["category"])
    op.create_index("ix_system_configs_is_public", "system_configs", ["is_public"])


def downgrade() -> None:
    op.drop_table("system_configs")
    config_type.drop(op.get_bind(), checkfirst=True)

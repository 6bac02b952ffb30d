"""create users / user_player_permissions / audit_logs tables

Revision ID: 20261018_01
Revises:
Create Date: 2026-10-18
"""
import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "20261018_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("zo_user_id", sa.String(length=128), nullable=False),
        sa.Column("phone_number", sa.String(length=32), nullable=False),
        sa.Column("mobile_country_code", sa.String(length=8), nullable=True),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("membership", sa.String(length=20), nullable=False, server_default="none"),
        sa.Column("roles", sa.JSON(), nullable=False),
        sa.Column("access_groups", sa.JSON(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
    )
    op.create_index("ix_users_zo_user_id", "users", ["zo_user_id"], unique=True)
    op.create_index("ix_users_phone_number", "users", ["phone_number"])

    op.create_table(
        "user_player_permissions",
        sa.Column("id", sa.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "user_id",
            sa.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_user_player_permissions_user_id_users"),
            nullable=False,
        ),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("player_id", sa.String(length=128), nullable=False),
        sa.Column("player_name", sa.String(length=255), nullable=False),
        sa.Column("access_level", sa.String(length=16), nullable=False, server_default="view"),
        sa.Column("granted_by", sa.String(length=128), nullable=False),
        sa.Column("granted_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("id", name="pk_user_player_permissions"),
        sa.UniqueConstraint("user_id", "player_id", name="uq_user_player_permissions_user_player"),
    )
    op.create_index("ix_user_player_permissions_user_id", "user_player_permissions", ["user_id"])
    op.create_index("ix_user_player_permissions_player_id", "user_player_permissions", ["player_id"])
    op.create_index("ix_user_player_permissions_player_name", "user_player_permissions", ["player_name"])
    op.create_index("ix_user_player_permissions_expires_at", "user_player_permissions", ["expires_at"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("actor", sa.String(length=128), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("resource_type", sa.String(length=32), nullable=False),
        sa.Column("resource_id", sa.String(length=128), nullable=True),
        sa.Column("outcome", sa.String(length=16), nullable=False, server_default="success"),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("id", name="pk_audit_logs"),
    )
    op.create_index("ix_audit_logs_actor", "audit_logs", ["actor"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_resource_id", "audit_logs", ["resource_id"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_created_at", table_name="audit_logs")
    op.drop_index("ix_audit_logs_resource_id", table_name="audit_logs")
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_index("ix_audit_logs_actor", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_user_player_permissions_expires_at", table_name="user_player_permissions")
    op.drop_index("ix_user_player_permissions_player_name", table_name="user_player_permissions")
    op.drop_index("ix_user_player_permissions_player_id", table_name="user_player_permissions")
    op.drop_index("ix_user_player_permissions_user_id", table_name="user_player_permissions")
    op.drop_table("user_player_permissions")

    op.drop_index("ix_users_phone_number", table_name="users")
    op.drop_index("ix_users_zo_user_id", table_name="users")
    op.drop_table("users")

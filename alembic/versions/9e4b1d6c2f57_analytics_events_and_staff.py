"""analytics_events_and_staff

Revision ID: 9e4b1d6c2f57
Revises: 7c2d9e4f1a83
Create Date: 2026-10-18 11:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "9e4b1d6c2f57"
down_revision: str | None = "7c2d9e4f1a83"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

NEW_TENANT_SCOPED_TABLES = ("analytics_events", "staff")


def upgrade() -> None:
    op.create_table(
        "analytics_events",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("event_type", sa.String(32), nullable=False),
        sa.Column("session_id", sa.String(512), nullable=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column(
            "payload",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "event_type IN ('page_visit','code_copy','coupon_download','wallet_add',"
            "'survey_completion')",
            name="ck_analytics_events_type",
        ),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
    )
    op.create_index(
        "idx_analytics_events_tenant_type_time",
        "analytics_events",
        ["tenant_id", "event_type", "created_at"],
    )
    op.create_index(
        "idx_analytics_events_tenant_time",
        "analytics_events",
        ["tenant_id", "created_at"],
    )

    op.create_table(
        "staff",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("role IN ('owner','admin','staff')", name="ck_staff_role"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.UniqueConstraint("tenant_id", "email", name="uq_staff_tenant_email"),
    )

    for table in NEW_TENANT_SCOPED_TABLES:
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY;")
        op.execute(f"ALTER TABLE {table} FORCE ROW LEVEL SECURITY;")
        op.execute(
            f"""
            CREATE POLICY {table}_tenant_isolation ON {table}
            USING (tenant_id = current_tenant_id())
            WITH CHECK (tenant_id = current_tenant_id());
            """
        )


def downgrade() -> None:
    for table in reversed(NEW_TENANT_SCOPED_TABLES):
        op.execute(f"DROP POLICY IF EXISTS {table}_tenant_isolation ON {table};")

    op.drop_table("staff")
    op.drop_index("idx_analytics_events_tenant_time", table_name="analytics_events")
    op.drop_index("idx_analytics_events_tenant_type_time", table_name="analytics_events")
    op.drop_table("analytics_events")

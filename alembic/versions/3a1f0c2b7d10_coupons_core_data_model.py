"""coupons_core_data_model

Revision ID: 3a1f0c2b7d10
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "3a1f0c2b7d10"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto;")

    op.create_table(
        "tenants",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("slug", sa.String(64), nullable=False),
        sa.Column("subdomain", sa.String(63), nullable=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("logo_url", sa.String(512), nullable=True),
        sa.Column("website_url", sa.String(512), nullable=True),
        sa.Column("theme", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("slug ~ '^[a-z0-9][a-z0-9-]*$'", name="ck_tenants_slug_format"),
        sa.CheckConstraint(
            "subdomain IS NULL OR subdomain ~ '^[a-z0-9][a-z0-9-]*$'",
            name="ck_tenants_subdomain_format",
        ),
        sa.UniqueConstraint("slug", name="uq_tenants_slug"),
        sa.UniqueConstraint("subdomain", name="uq_tenants_subdomain"),
    )

    op.create_table(
        "offers",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("discount", sa.String(64), nullable=True),
        sa.Column("image_url", sa.String(512), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
    )
    op.create_index("idx_offers_tenant_active", "offers", ["tenant_id", "active"])
    op.create_index("idx_offers_tenant_created", "offers", ["tenant_id", "created_at"])

    op.create_table(
        "grants",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("offer_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("code", sa.String(48), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("max_redemptions", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("redemptions_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("recipient", sa.String(320), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.CheckConstraint(
            "status IN ('issued','redeemed','revoked','expired')",
            name="ck_grants_status",
        ),
        sa.CheckConstraint("max_redemptions >= 1", name="ck_grants_max_redemptions_positive"),
        sa.CheckConstraint(
            "redemptions_count >= 0 AND redemptions_count <= max_redemptions",
            name="ck_grants_redemptions_count_range",
        ),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["offer_id"], ["offers.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("code", name="uq_grants_code"),
    )
    op.create_index(
        "uq_grants_open_recipient",
        "grants",
        ["tenant_id", "offer_id", "recipient"],
        unique=True,
        postgresql_where=sa.text("status = 'issued' AND recipient IS NOT NULL"),
    )
    op.create_index("idx_grants_tenant_issued_at", "grants", ["tenant_id", "issued_at"])
    op.create_index(
        "idx_grants_recipient_lookup",
        "grants",
        ["tenant_id", "offer_id", "recipient", "issued_at"],
    )
    op.create_index(
        "idx_grants_open_expires_at",
        "grants",
        ["expires_at"],
        postgresql_where=sa.text("status IN ('issued', 'redeemed') AND expires_at IS NOT NULL"),
    )

    op.create_table(
        "opt_ins",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("consent_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.UniqueConstraint("tenant_id", "email", name="uq_opt_ins_tenant_email"),
    )

    op.create_table(
        "questions",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column(
            "options",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.CheckConstraint(
            "type IN ('text','number','boolean','single_choice','multiple_choice',"
            "'ranked_choice','date','time','rating')",
            name="ck_questions_type",
        ),
        sa.CheckConstraint("order_index >= 0", name="ck_questions_order_index_non_negative"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
    )
    op.create_index("idx_questions_tenant_order", "questions", ["tenant_id", "order_index"])

    op.create_table(
        "survey_responses",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("question_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("answer", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("session_id", sa.String(512), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["question_id"], ["questions.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "idx_survey_responses_tenant_created",
        "survey_responses",
        ["tenant_id", "created_at"],
    )
    op.create_index("idx_survey_responses_session", "survey_responses", ["session_id"])
    op.create_index("idx_survey_responses_question", "survey_responses", ["question_id"])


def downgrade() -> None:
    op.drop_index("idx_survey_responses_question", table_name="survey_responses")
    op.drop_index("idx_survey_responses_session", table_name="survey_responses")
    op.drop_index("idx_survey_responses_tenant_created", table_name="survey_responses")
    op.drop_table("survey_responses")

    op.drop_index("idx_questions_tenant_order", table_name="questions")
    op.drop_table("questions")

    op.drop_table("opt_ins")

    op.drop_index("idx_grants_open_expires_at", table_name="grants")
    op.drop_index("idx_grants_recipient_lookup", table_name="grants")
    op.drop_index("idx_grants_tenant_issued_at", table_name="grants")
    op.drop_index("uq_grants_open_recipient", table_name="grants")
    op.drop_table("grants")

    op.drop_index("idx_offers_tenant_created", table_name="offers")
    op.drop_index("idx_offers_tenant_active", table_name="offers")
    op.drop_table("offers")

    op.drop_table("tenants")

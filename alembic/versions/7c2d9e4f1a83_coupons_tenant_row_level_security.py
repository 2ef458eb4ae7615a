"""coupons_tenant_row_level_security

Revision ID: 7c2d9e4f1a83
Revises: 3a1f0c2b7d10
Create Date: 2026-10-18 09:30:00.000000
"""
from collections.abc import Sequence

from alembic import op

revision: str = "7c2d9e4f1a83"
down_revision: str | None = "3a1f0c2b7d10"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

TENANT_SCOPED_TABLES = ("offers", "grants", "opt_ins", "questions", "survey_responses")


def upgrade() -> None:
    op.execute(
        """
        CREATE OR REPLACE FUNCTION current_tenant_id()
        RETURNS uuid
        LANGUAGE sql
        STABLE
        AS $$
            SELECT NULLIF(current_setting('app.tenant_id', true), '')::uuid;
        $$;
        """
    )

    for table in TENANT_SCOPED_TABLES:
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY;")
        op.execute(f"ALTER TABLE {table} FORCE ROW LEVEL SECURITY;")
        op.execute(
            f"""
            CREATE POLICY {table}_tenant_isolation ON {table}
            USING (tenant_id = current_tenant_id())
            WITH CHECK (tenant_id = current_tenant_id());
            """
        )

    # Tenants are public metadata; only the scoped tenant may change its own row.
    op.execute("ALTER TABLE tenants ENABLE ROW LEVEL SECURITY;")
    op.execute("ALTER TABLE tenants FORCE ROW LEVEL SECURITY;")
    op.execute("CREATE POLICY tenants_public_read ON tenants FOR SELECT USING (true);")
    op.execute(
        """
        CREATE POLICY tenants_self_update ON tenants FOR UPDATE
        USING (id = current_tenant_id())
        WITH CHECK (id = current_tenant_id());
        """
    )

    op.execute(
        """
        CREATE OR REPLACE FUNCTION resolve_tenant(p_slug text)
        RETURNS uuid
        LANGUAGE sql
        STABLE
        SECURITY DEFINER
        SET search_path = public
        AS $$
            SELECT id FROM tenants WHERE slug = lower(p_slug) AND active LIMIT 1;
        $$;
        """
    )
    op.execute(
        """
        CREATE OR REPLACE FUNCTION resolve_tenant_by_subdomain(p_subdomain text)
        RETURNS uuid
        LANGUAGE sql
        STABLE
        SECURITY DEFINER
        SET search_path = public
        AS $$
            SELECT id FROM tenants WHERE subdomain = lower(p_subdomain) AND active LIMIT 1;
        $$;
        """
    )


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS resolve_tenant_by_subdomain(text);")
    op.execute("DROP FUNCTION IF EXISTS resolve_tenant(text);")

    op.execute("DROP POLICY IF EXISTS tenants_self_update ON tenants;")
    op.execute("DROP POLICY IF EXISTS tenants_public_read ON tenants;")
    op.execute("ALTER TABLE tenants NO FORCE ROW LEVEL SECURITY;")
    op.execute("ALTER TABLE tenants DISABLE ROW LEVEL SECURITY;")

    for table in reversed(TENANT_SCOPED_TABLES):
        op.execute(f"DROP POLICY IF EXISTS {table}_tenant_isolation ON {table};")
        op.execute(f"ALTER TABLE {table} NO FORCE ROW LEVEL SECURITY;")
        op.execute(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY;")

    op.execute("DROP FUNCTION IF EXISTS current_tenant_id();")

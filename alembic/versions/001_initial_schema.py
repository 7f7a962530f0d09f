"""Initial schema: users, sites, site_versions, conversations, RLS policies.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from alembic import op

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Resolves the RLS user; NULL means a system connection
    op.execute("""
        CREATE OR REPLACE FUNCTION get_app_user_id() RETURNS uuid AS $$
        DECLARE
            val text;
        BEGIN
            val := current_setting('app.user_id', true);
            IF val IS NULL OR val = '' THEN
                RETURN NULL;
            END IF;
            RETURN val::uuid;
        END;
        $$ LANGUAGE plpgsql STABLE;
    """)

    # Users
    op.execute("""
        CREATE TABLE users (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            email TEXT UNIQUE NOT NULL,
            name TEXT,
            avatar_url TEXT,
            credits INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    # Sites. version_seq is the last version number handed out for the site
    op.execute("""
        CREATE TABLE sites (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            title TEXT NOT NULL DEFAULT 'Untitled Project',
            subdomain TEXT NOT NULL,
            custom_domain TEXT,
            custom_domain_status TEXT NOT NULL DEFAULT 'none'
                CHECK (custom_domain_status IN ('none', 'pending', 'active')),
            is_published BOOLEAN NOT NULL DEFAULT false,
            current_version_id UUID,
            version_seq INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT sites_subdomain_key UNIQUE (subdomain)
        );
    """)
    op.execute("CREATE INDEX idx_sites_user_updated ON sites(user_id, updated_at DESC);")

    # Versions are append-only and go away only with their site
    op.execute("""
        CREATE TABLE site_versions (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            site_id UUID NOT NULL REFERENCES sites(id) ON DELETE CASCADE,
            version_number INTEGER NOT NULL CHECK (version_number >= 1),
            html_content TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT site_versions_site_number_key UNIQUE (site_id, version_number)
        );
    """)

    op.execute("""
        ALTER TABLE sites
        ADD CONSTRAINT sites_current_version_fk
        FOREIGN KEY (current_version_id) REFERENCES site_versions(id)
        ON DELETE SET NULL DEFERRABLE INITIALLY DEFERRED;
    """)

    # One conversation per site
    op.execute("""
        CREATE TABLE conversations (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            site_id UUID NOT NULL REFERENCES sites(id) ON DELETE CASCADE,
            messages JSONB NOT NULL DEFAULT '[]'::jsonb,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT conversations_site_key UNIQUE (site_id)
        );
    """)

    # Row level security, forced so the table owner is scoped too
    for table in ("users", "sites", "site_versions", "conversations"):
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY;")
        op.execute(f"ALTER TABLE {table} FORCE ROW LEVEL SECURITY;")

    op.execute("""
        CREATE POLICY users_all_own ON users
        FOR ALL
        USING (get_app_user_id() IS NULL OR id = get_app_user_id());
    """)

    op.execute("""
        CREATE POLICY sites_all_own ON sites
        FOR ALL
        USING (get_app_user_id() IS NULL OR user_id = get_app_user_id());
    """)

    op.execute("""
        CREATE POLICY site_versions_all_own ON site_versions
        FOR ALL
        USING (
            get_app_user_id() IS NULL
            OR site_id IN (SELECT id FROM sites WHERE user_id = get_app_user_id())
        );
    """)

    op.execute("""
        CREATE POLICY conversations_all_own ON conversations
        FOR ALL
        USING (
            get_app_user_id() IS NULL
            OR site_id IN (SELECT id FROM sites WHERE user_id = get_app_user_id())
        );
    """)


def downgrade():
    op.execute("DROP TABLE IF EXISTS conversations CASCADE;")
    op.execute("ALTER TABLE IF EXISTS sites DROP CONSTRAINT IF EXISTS sites_current_version_fk;")
    op.execute("DROP TABLE IF EXISTS site_versions CASCADE;")
    op.execute("DROP TABLE IF EXISTS sites CASCADE;")
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS get_app_user_id();")

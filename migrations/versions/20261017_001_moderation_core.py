"""Moderation core - admins, admin_sessions, users, contents, reports, moderation_actions, notifications

Revision ID: 20261017_001
Revises:
Create Date: 2026-10-17

"""

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261017_001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # 1. Admin accounts and bearer sessions
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS admins (
            id SERIAL PRIMARY KEY,
            username VARCHAR(64) NOT NULL UNIQUE,
            email VARCHAR(255),
            password_hash VARCHAR(255) NOT NULL,
            role VARCHAR(16) NOT NULL DEFAULT 'admin',
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMP NOT NULL DEFAULT (now() AT TIME ZONE 'utc')
        )
    """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS admin_sessions (
            id SERIAL PRIMARY KEY,
            admin_id INTEGER NOT NULL REFERENCES admins(id) ON DELETE CASCADE,
            token_hash VARCHAR(64) NOT NULL UNIQUE,
            username VARCHAR(64) NOT NULL,
            role VARCHAR(16) NOT NULL,
            issued_at TIMESTAMP NOT NULL
        )
    """
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_admin_sessions_admin_id ON admin_sessions(admin_id)")

    # 2. Users with ban metadata (is_banned is derived at read time)
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR(64) PRIMARY KEY,
            username VARCHAR(64),
            display_name VARCHAR(128),
            ban_reason TEXT,
            ban_type VARCHAR(16),
            ban_date TIMESTAMP,
            ban_expiry_date TIMESTAMP,
            banned_by VARCHAR(64),
            created_at TIMESTAMP NOT NULL DEFAULT (now() AT TIME ZONE 'utc')
        )
    """
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_users_username ON users(username)")

    # 3. Moderated content
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS contents (
            id VARCHAR(64) PRIMARY KEY,
            author_id VARCHAR(64),
            author_name VARCHAR(128),
            title VARCHAR(200) NOT NULL DEFAULT '',
            body TEXT,
            status VARCHAR(16) NOT NULL DEFAULT 'approved',
            reviewed_by VARCHAR(64),
            reviewed_at TIMESTAMP,
            admin_notes TEXT,
            report_context TEXT,
            flag_count INTEGER NOT NULL DEFAULT 0,
            is_flagged BOOLEAN NOT NULL DEFAULT FALSE,
            created_at TIMESTAMP NOT NULL DEFAULT (now() AT TIME ZONE 'utc'),
            CONSTRAINT chk_content_status CHECK (status IN ('pending','approved','rejected','removed'))
        )
    """
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_contents_author_id ON contents(author_id)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_contents_status ON contents(status)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_contents_flagged ON contents(is_flagged)")

    # 4. Reports
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS reports (
            id BIGSERIAL PRIMARY KEY,
            content_id VARCHAR(64) NOT NULL REFERENCES contents(id) ON DELETE CASCADE,
            reporter_identity VARCHAR(64) NOT NULL DEFAULT 'Anonymous',
            reason VARCHAR(32) NOT NULL,
            context TEXT,
            reported_user_id VARCHAR(64),
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            resolution VARCHAR(16),
            reviewed_by VARCHAR(64),
            reviewed_at TIMESTAMP,
            admin_notes TEXT,
            created_at TIMESTAMP NOT NULL DEFAULT (now() AT TIME ZONE 'utc'),
            CONSTRAINT chk_report_status CHECK (status IN ('pending','resolved'))
        )
    """
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_reports_content_id ON reports(content_id)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_reports_status ON reports(status, id)")

    # One pending report per reporter and content
    op.execute(
        """
        CREATE UNIQUE INDEX IF NOT EXISTS uq_reports_pending_per_reporter
        ON reports(reporter_identity, content_id)
        WHERE status = 'pending'
    """
    )

    # 5. Moderation history
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS moderation_actions (
            id BIGSERIAL PRIMARY KEY,
            target_user VARCHAR(64),
            report_id BIGINT,
            content_id VARCHAR(64),
            action VARCHAR(24) NOT NULL,
            actor VARCHAR(64) NOT NULL,
            reason TEXT,
            created_at TIMESTAMP NOT NULL DEFAULT (now() AT TIME ZONE 'utc')
        )
    """
    )
    op.execute("CREATE INDEX IF NOT EXISTS idx_moderation_target ON moderation_actions(target_user)")

    # 6. In-app notifications
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS notifications (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            event VARCHAR(32) NOT NULL,
            message TEXT NOT NULL,
            is_read BOOLEAN NOT NULL DEFAULT FALSE,
            created_at TIMESTAMP NOT NULL DEFAULT (now() AT TIME ZONE 'utc')
        )
    """
    )
    op.execute("CREATE INDEX IF NOT EXISTS idx_notifications_user_unread ON notifications(user_id, is_read)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS notifications CASCADE")
    op.execute("DROP TABLE IF EXISTS moderation_actions CASCADE")
    op.execute("DROP TABLE IF EXISTS reports CASCADE")
    op.execute("DROP TABLE IF EXISTS contents CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
    op.execute("DROP TABLE IF EXISTS admin_sessions CASCADE")
    op.execute("DROP TABLE IF EXISTS admins CASCADE")

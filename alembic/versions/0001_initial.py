"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    record_status = sa.Enum("draft", "published", name="recordstatus")
    record_status.create(bind, checkfirst=True)

    op.create_table(
        "content_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_id", sa.String(length=64), nullable=True, unique=True),
        sa.Column("slug", sa.String(length=255), nullable=False, unique=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("live_content", sa.Text(), nullable=True),
        sa.Column("embed_html", sa.Text(), nullable=True),
        sa.Column("status", record_status, nullable=False, server_default="published"),
        sa.Column("type", sa.String(length=32), nullable=False, server_default="twitter"),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("localized_tags", sa.JSON(), nullable=True),
        sa.Column("localized_slug", sa.String(length=255), nullable=True),
        sa.Column("featured_image", sa.Text(), nullable=True),
        sa.Column("source_url", sa.Text(), nullable=True),
        sa.Column("author", sa.String(length=128), nullable=False, server_default="Admin"),
        sa.Column("category", sa.String(length=64), nullable=False, server_default="news"),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("is_fallback", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_content_records_created_at", "content_records", ["created_at"])
    op.create_index("ix_content_records_status", "content_records", ["status"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("actor", sa.String(length=128), nullable=False),
        sa.Column("action", sa.String(length=128), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("payload_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_index("ix_content_records_status", table_name="content_records")
    op.drop_index("ix_content_records_created_at", table_name="content_records")
    op.drop_table("content_records")
    sa.Enum(name="recordstatus").drop(op.get_bind(), checkfirst=True)

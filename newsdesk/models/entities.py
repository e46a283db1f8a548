from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum as SAEnum,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from newsdesk.core.time import now_utc
from newsdesk.db.base import Base


class RecordStatus(str, Enum):
    draft = "draft"
    published = "published"


class ContentRecord(Base):
    __tablename__ = "content_records"
    __table_args__ = (Index("ix_content_records_created_at", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # NULLs never collide under a unique index, so records without a source id coexist.
    external_id: Mapped[str | None] = mapped_column(String(64), unique=True)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str | None] = mapped_column(Text)
    content: Mapped[str | None] = mapped_column(Text)
    live_content: Mapped[str | None] = mapped_column(Text)
    embed_html: Mapped[str | None] = mapped_column(Text)
    status: Mapped[RecordStatus] = mapped_column(
        SAEnum(RecordStatus), default=RecordStatus.published, nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(32), default="twitter", nullable=False)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    localized_tags: Mapped[list] = mapped_column(JSON, default=list)
    localized_slug: Mapped[str | None] = mapped_column(String(255))
    featured_image: Mapped[str | None] = mapped_column(Text)
    source_url: Mapped[str | None] = mapped_column(Text)
    author: Mapped[str] = mapped_column(String(128), default="Admin", nullable=False)
    category: Mapped[str] = mapped_column(String(64), default="news", nullable=False)
    published_at: Mapped[datetime | None] = mapped_column(DateTime)
    is_fallback: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=now_utc, onupdate=now_utc, nullable=False
    )


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    actor: Mapped[str] = mapped_column(String(128), nullable=False)
    action: Mapped[str] = mapped_column(String(128), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    payload_json: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, nullable=False)

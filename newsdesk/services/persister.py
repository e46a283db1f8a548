import logging
from dataclasses import dataclass

from jinja2 import Environment, select_autoescape
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from newsdesk.core.config import Settings, get_settings
from newsdesk.core.errors import DuplicateError, NotFoundError
from newsdesk.core.time import now_utc
from newsdesk.models.entities import AuditLog, ContentRecord, RecordStatus
from newsdesk.services.ingestion.common import Item
from newsdesk.services.transformer import TransformResult

logger = logging.getLogger(__name__)

_templates = Environment(autoescape=select_autoescape(default=True, default_for_string=True))

EMBED_TEMPLATES = {
    "full": _templates.from_string(
        """
<blockquote class="twitter-tweet">
  <p>{{ item.text }}</p>
  &mdash; {{ item.author_name }} (@{{ item.author_handle }})
  <a href="{{ item.url or '' }}">{{ created }}</a>
</blockquote>
<script async src="https://platform.twitter.com/widgets.js" charset="utf-8"></script>
""".strip()
    ),
    "plain": _templates.from_string(
        """
<blockquote class="twitter-tweet">
  <p>{{ item.text }}</p>
  &mdash; {{ item.author_name }} (@{{ item.author_handle }})
  <a href="{{ item.url or '' }}">{{ created }}</a>
</blockquote>
""".strip()
    ),
}

UPDATABLE_FIELDS = frozenset(
    {
        "external_id",
        "slug",
        "title",
        "summary",
        "content",
        "live_content",
        "embed_html",
        "status",
        "type",
        "tags",
        "localized_tags",
        "localized_slug",
        "featured_image",
        "source_url",
        "author",
        "category",
        "published_at",
    }
)
NON_NULLABLE_FIELDS = frozenset({"slug", "title", "status", "type", "author", "category"})


@dataclass
class PipelineProfile:
    """Knobs that differ between deployments of the same pipeline."""

    default_status: RecordStatus = RecordStatus.published
    fallback_status: RecordStatus = RecordStatus.draft
    embed_style: str = "full"
    record_type: str = "twitter"
    record_author: str = "Admin"
    record_category: str = "news"

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "PipelineProfile":
        settings = settings or get_settings()
        return cls(
            default_status=RecordStatus(settings.default_status),
            fallback_status=RecordStatus(settings.fallback_status),
            embed_style=settings.embed_style,
            record_type=settings.record_type,
            record_author=settings.record_author,
            record_category=settings.record_category,
        )


def render_embed(item: Item, style: str = "full") -> str:
    template = EMBED_TEMPLATES.get(style, EMBED_TEMPLATES["full"])
    created = item.created_at.strftime("%B %d, %Y") if item.created_at else ""
    return template.render(item=item, created=created)


def _find_conflict(db: Session, external_id: str | None, slug: str | None, exclude_id: int | None = None) -> str | None:
    if external_id:
        query = select(ContentRecord.id).where(ContentRecord.external_id == external_id)
        if exclude_id is not None:
            query = query.where(ContentRecord.id != exclude_id)
        if db.execute(query).first():
            return f"A record for external id {external_id} already exists"
    if slug:
        query = select(ContentRecord.id).where(ContentRecord.slug == slug)
        if exclude_id is not None:
            query = query.where(ContentRecord.id != exclude_id)
        if db.execute(query).first():
            return f"Slug '{slug}' is already in use"
    return None


def upsert_from_item(
    db: Session, item: Item, result: TransformResult, profile: PipelineProfile | None = None
) -> ContentRecord:
    """Insert a record for a transformed item; uniqueness conflicts are rejected, never overwritten."""
    profile = profile or PipelineProfile.from_settings()
    fields = result.fields

    conflict = _find_conflict(db, item.external_id, fields.slug)
    if conflict:
        raise DuplicateError(conflict)

    record = ContentRecord(
        external_id=item.external_id,
        slug=fields.slug,
        title=fields.title,
        summary=fields.summary,
        content=fields.summary,
        live_content=fields.summary,
        embed_html=render_embed(item, profile.embed_style),
        status=profile.fallback_status if result.degraded else profile.default_status,
        type=profile.record_type,
        tags=list(fields.tags),
        localized_tags=list(fields.localized_tags),
        localized_slug=fields.localized_slug,
        featured_image=item.media_urls[0] if item.media_urls else None,
        source_url=item.url,
        author=profile.record_author,
        category=profile.record_category,
        published_at=now_utc(),
        is_fallback=result.degraded,
    )
    db.add(record)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateError(f"Uniqueness violation for external id {item.external_id}") from exc
    db.refresh(record)
    logger.info(
        "Stored record %s for %s",
        record.id,
        item.external_id,
        extra={"event": "record_created", "record_id": record.id, "external_id": item.external_id},
    )
    return record


def update_record(db: Session, record_id: int, changes: dict, actor: str = "editor") -> ContentRecord:
    record = db.get(ContentRecord, record_id)
    if record is None:
        raise NotFoundError(f"Record {record_id} not found")

    applied = {
        key: value
        for key, value in changes.items()
        if key in UPDATABLE_FIELDS and not (value is None and key in NON_NULLABLE_FIELDS)
    }
    if "status" in applied:
        applied["status"] = RecordStatus(applied["status"])

    conflict = _find_conflict(
        db,
        applied.get("external_id"),
        applied.get("slug"),
        exclude_id=record.id,
    )
    if conflict:
        raise DuplicateError(conflict)

    for key, value in applied.items():
        setattr(record, key, value)

    db.add(
        AuditLog(
            actor=actor,
            action="update",
            entity_type="content_record",
            entity_id=record.id,
            payload_json={key: _jsonable(value) for key, value in applied.items()},
        )
    )
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateError("Update violates a uniqueness constraint") from exc
    db.refresh(record)
    return record


def list_records(db: Session) -> list[ContentRecord]:
    query = select(ContentRecord).order_by(ContentRecord.created_at.desc(), ContentRecord.id.desc())
    return list(db.execute(query).scalars())


def _jsonable(value):
    if isinstance(value, RecordStatus):
        return value.value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value

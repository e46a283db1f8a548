from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from newsdesk.models.entities import RecordStatus
from newsdesk.utils.text import localized_slug, slugify


class UpstreamAuthor(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = ""
    user_name: str = Field(default="", alias="userName")


class UpstreamMedia(BaseModel):
    model_config = ConfigDict(extra="ignore")

    media_url_https: str | None = None


class UpstreamEntities(BaseModel):
    model_config = ConfigDict(extra="ignore")

    media: list[UpstreamMedia] = Field(default_factory=list)


class UpstreamTweet(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    text: str = ""
    url: str | None = None
    created_at: str | None = Field(default=None, alias="createdAt")
    lang: str | None = None
    author: UpstreamAuthor = Field(default_factory=UpstreamAuthor)
    extended_entities: UpstreamEntities | None = Field(default=None, alias="extendedEntities")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> str:
        if isinstance(value, bool) or value is None or str(value).strip() == "":
            raise ValueError("tweet id is required")
        return str(value).strip()

    @field_validator("text", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        return "" if value is None else str(value)


def _as_tag_list(value: Any) -> Any:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",")]
    return value


def _require_non_blank(values: list[str]) -> list[str]:
    cleaned = [str(item).strip() for item in values if str(item).strip()]
    if not cleaned:
        raise ValueError("must contain at least one non-empty tag")
    return cleaned


class FormattedFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str = Field(min_length=1)
    summary: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    tags: list[str] = Field(min_length=1)
    localized_slug: str = Field(min_length=1, validation_alias=AliasChoices("localized_slug", "slug_te"))
    localized_tags: list[str] = Field(
        min_length=1, validation_alias=AliasChoices("localized_tags", "tags_te")
    )

    @field_validator("title", "summary", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("slug", mode="before")
    @classmethod
    def normalize_slug(cls, value: Any) -> Any:
        return slugify(value) if isinstance(value, str) else value

    @field_validator("localized_slug", mode="before")
    @classmethod
    def normalize_localized_slug(cls, value: Any) -> Any:
        return localized_slug(value) if isinstance(value, str) else value

    @field_validator("tags", "localized_tags", mode="before")
    @classmethod
    def split_tags(cls, value: Any) -> Any:
        return _as_tag_list(value)

    @field_validator("tags", "localized_tags")
    @classmethod
    def non_blank_tags(cls, value: list[str]) -> list[str]:
        return _require_non_blank(value)


class FreeTextOutput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = Field(min_length=1)
    summary: str = Field(min_length=1)


class IngestByIdsRequest(BaseModel):
    tweet_ids: list[str] = Field(min_length=1)

    @field_validator("tweet_ids", mode="before")
    @classmethod
    def accept_comma_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [part for part in value.split(",")]
        return value

    @field_validator("tweet_ids")
    @classmethod
    def ids_not_blank(cls, value: list[str]) -> list[str]:
        cleaned = [item.strip() for item in value]
        if any(not item for item in cleaned):
            raise ValueError("tweet ids must be non-empty strings")
        return cleaned


class FreeTextRequest(BaseModel):
    text: str = Field(min_length=1)
    instruction: str = Field(min_length=1)


class ContentRecordOut(BaseModel):
    id: int
    external_id: str | None = None
    slug: str
    title: str
    summary: str | None = None
    content: str | None = None
    live_content: str | None = None
    embed_html: str | None = None
    status: RecordStatus
    type: str
    tags: list[str] = Field(default_factory=list)
    localized_tags: list[str] = Field(default_factory=list)
    localized_slug: str | None = None
    featured_image: str | None = None
    source_url: str | None = None
    author: str
    category: str
    published_at: datetime | None = None
    is_fallback: bool = False
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ContentRecordPatch(BaseModel):
    """Partial update body. Unknown keys (including a client `_id`) are ignored."""

    model_config = ConfigDict(extra="ignore")

    external_id: str | None = None
    slug: str | None = Field(default=None, min_length=1)
    title: str | None = Field(default=None, min_length=1)
    summary: str | None = None
    content: str | None = None
    live_content: str | None = None
    embed_html: str | None = None
    status: RecordStatus | None = None
    type: str | None = None
    tags: list[str] | None = None
    localized_tags: list[str] | None = None
    localized_slug: str | None = None
    featured_image: str | None = None
    source_url: str | None = None
    author: str | None = None
    category: str | None = None
    published_at: datetime | None = None

    @field_validator("slug")
    @classmethod
    def normalize_slug(cls, value: str | None) -> str | None:
        if value is None:
            return value
        slug = slugify(value)
        if not slug:
            raise ValueError("slug must contain latin letters or digits")
        return slug


class FailedItemOut(BaseModel):
    id: str
    reason: str


class SchedulerStatusOut(BaseModel):
    state: str
    authors: list[str]
    interval_seconds: float
    last_run_at: datetime | None = None
    ticks: int

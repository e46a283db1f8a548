"""
Turns raw post text into structured bilingual content fields.

Both operations are total: any provider, parsing or schema failure is
recovered locally with a deterministic fallback built from the input text,
flagged with `degraded=True` so callers can route it to review.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from newsdesk.core.config import get_settings
from newsdesk.core.observability import TRANSFORM_FALLBACKS
from newsdesk.core.time import epoch_ms, now_utc
from newsdesk.schemas.common import FormattedFields, FreeTextOutput
from newsdesk.services.llm.client import run_format_item, run_free_text
from newsdesk.utils.text import normalize_text, slugify

logger = logging.getLogger(__name__)

TITLE_MAX_CHARS = 60
FALLBACK_TITLE = "Untitled post"
FALLBACK_TAG = "news"
FREE_TEXT_ERROR_TITLE = "Error in Processing"

FormatItemFn = Callable[[str], Awaitable[tuple[FormattedFields, dict]]]
FreeTextFn = Callable[[str, str], Awaitable[tuple[FreeTextOutput, dict]]]


@dataclass
class TransformResult:
    fields: FormattedFields
    degraded: bool = False
    error: str | None = None
    provider: str | None = None
    model: str | None = None


@dataclass
class FreeTextResult:
    title: str
    summary: str
    degraded: bool = False

    def as_dict(self) -> dict:
        return {"title": self.title, "summary": self.summary}


def fallback_fields(text: str, language: str | None = None, tag: str | None = None) -> FormattedFields:
    settings = get_settings()
    language = language or settings.localized_language
    tag = tag or settings.fallback_localized_tag
    stamp = epoch_ms(now_utc())

    clean = (text or "").strip()
    headline = normalize_text(clean)
    title = headline[:TITLE_MAX_CHARS].strip() or FALLBACK_TITLE
    base_slug = slugify(title, max_length=TITLE_MAX_CHARS) or "post"
    return FormattedFields(
        title=title,
        summary=clean or title,
        slug=f"{base_slug}-{stamp}",
        tags=[FALLBACK_TAG],
        localized_slug=f"fallback-{language}-{stamp}",
        localized_tags=[tag],
    )


class Transformer:
    def __init__(
        self,
        format_item_fn: FormatItemFn = run_format_item,
        free_text_fn: FreeTextFn = run_free_text,
    ):
        self._format_item_fn = format_item_fn
        self._free_text_fn = free_text_fn

    async def format_item(self, text: str) -> TransformResult:
        try:
            fields, payload = await self._format_item_fn(text)
            if not isinstance(fields, FormattedFields):
                fields = FormattedFields.model_validate(fields)
            return TransformResult(
                fields=fields,
                provider=payload.get("provider"),
                model=payload.get("model"),
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Falling back to local formatting: %s", exc, extra={"event": "transform_fallback"}
            )
            TRANSFORM_FALLBACKS.labels("format_item").inc()
            return TransformResult(fields=fallback_fields(text), degraded=True, error=str(exc))

    async def format_free_text(self, text: str, instruction: str) -> FreeTextResult:
        try:
            output, _ = await self._free_text_fn(text, instruction)
            if not isinstance(output, FreeTextOutput):
                output = FreeTextOutput.model_validate(output)
            return FreeTextResult(title=output.title, summary=output.summary)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Free-text transform failed: %s", exc, extra={"event": "transform_fallback"})
            TRANSFORM_FALLBACKS.labels("free_text").inc()
            return FreeTextResult(
                title=FREE_TEXT_ERROR_TITLE,
                summary=str(exc) or exc.__class__.__name__,
                degraded=True,
            )

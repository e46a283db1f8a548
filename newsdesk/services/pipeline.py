"""
Batch orchestration of the fetch -> dedupe -> transform -> persist pipeline.

Items inside one call are processed strictly one after another. A failure at
any stage is recorded against that item and never aborts the batch.

Store work runs on the default executor so a slow commit never stalls the
event loop shared with API requests and scheduler ticks. Stored records are
captured as `ContentRecordOut` snapshots right after their commit; a later
rollback in the same session cannot expire them.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from newsdesk.core.config import get_settings
from newsdesk.core.errors import NewsdeskError, UpstreamFetchError
from newsdesk.core.observability import ITEM_OUTCOMES
from newsdesk.db.session import get_session_maker
from newsdesk.schemas.common import ContentRecordOut, FailedItemOut
from newsdesk.services.dedup import DedupCache, get_dedup_cache
from newsdesk.services.ingestion.common import Item
from newsdesk.services.ingestion.upstream import UpstreamClient
from newsdesk.services.persister import PipelineProfile, upsert_from_item
from newsdesk.services.transformer import Transformer, TransformResult

logger = logging.getLogger(__name__)

NOT_FOUND_REASON = "Item not found upstream"


@dataclass
class FailedItem:
    id: str
    reason: str


@dataclass
class BatchResult:
    succeeded: list[ContentRecordOut] = field(default_factory=list)
    failed: list[FailedItem] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "succeeded": [r.model_dump(mode="json") for r in self.succeeded],
            "failed": [FailedItemOut(id=f.id, reason=f.reason).model_dump() for f in self.failed],
            "skipped": list(self.skipped),
        }


class IngestPipeline:
    def __init__(
        self,
        db: Session,
        fetcher: UpstreamClient | None = None,
        transformer: Transformer | None = None,
        cache: DedupCache | None = None,
        profile: PipelineProfile | None = None,
        mark_failures: bool | None = None,
    ):
        self.db = db
        self.fetcher = fetcher or UpstreamClient()
        self.transformer = transformer or Transformer()
        self.cache = cache if cache is not None else get_dedup_cache()
        self.profile = profile or PipelineProfile.from_settings()
        self.mark_failures = get_settings().dedup_mark_failures if mark_failures is None else mark_failures

    def _persist(self, item: Item, result: TransformResult) -> ContentRecordOut:
        record = upsert_from_item(self.db, item, result, self.profile)
        return ContentRecordOut.model_validate(record)

    async def _process_item(self, item: Item) -> ContentRecordOut:
        result = await self.transformer.format_item(item.text)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._persist, item, result)

    async def _attempt(self, item: Item, outcome: BatchResult, mode: str) -> bool:
        try:
            record = await self._process_item(item)
        except NewsdeskError as exc:
            outcome.failed.append(FailedItem(id=item.external_id, reason=str(exc)))
            ITEM_OUTCOMES.labels(mode, "failed").inc()
            logger.warning("Item %s failed: %s", item.external_id, exc, extra={"external_id": item.external_id})
            return False
        except Exception as exc:  # noqa: BLE001
            await asyncio.get_running_loop().run_in_executor(None, self.db.rollback)
            outcome.failed.append(FailedItem(id=item.external_id, reason=f"Unexpected error: {exc}"))
            ITEM_OUTCOMES.labels(mode, "failed").inc()
            logger.exception("Item %s failed unexpectedly", item.external_id, extra={"external_id": item.external_id})
            return False
        outcome.succeeded.append(record)
        ITEM_OUTCOMES.labels(mode, "succeeded").inc()
        return True

    async def process_ids(self, ids: list[str]) -> BatchResult:
        unique_ids = [i for i in dict.fromkeys(str(i).strip() for i in ids) if i]
        outcome = BatchResult()
        if not unique_ids:
            return outcome

        try:
            items = await self.fetcher.fetch_by_ids(unique_ids)
        except UpstreamFetchError as exc:
            outcome.failed.extend(FailedItem(id=i, reason=str(exc)) for i in unique_ids)
            ITEM_OUTCOMES.labels("ids", "failed").inc(len(unique_ids))
            logger.warning("Batch fetch failed for %d ids: %s", len(unique_ids), exc)
            return outcome

        by_id = {item.external_id: item for item in items}
        for external_id in unique_ids:
            item = by_id.get(external_id)
            if item is None:
                outcome.failed.append(FailedItem(id=external_id, reason=NOT_FOUND_REASON))
                ITEM_OUTCOMES.labels("ids", "failed").inc()
                continue
            await self._attempt(item, outcome, "ids")

        logger.info(
            "Processed %d ids",
            len(unique_ids),
            extra={"event": "batch_ids", "succeeded": len(outcome.succeeded), "failed": len(outcome.failed)},
        )
        return outcome

    async def process_author(self, handle: str) -> BatchResult:
        """Process an author's latest items; raises UpstreamFetchError when the feed cannot be fetched."""
        items = await self.fetcher.fetch_by_author(handle)
        outcome = BatchResult()

        to_process: list[Item] = []
        seen: set[str] = set()
        for item in items:
            if item.external_id in seen:
                continue
            seen.add(item.external_id)
            if self.cache.is_recently_processed(item.external_id):
                outcome.skipped.append(item.external_id)
                ITEM_OUTCOMES.labels("author", "skipped").inc()
            else:
                to_process.append(item)

        for item in to_process:
            ok = await self._attempt(item, outcome, "author")
            if ok or self.mark_failures:
                self.cache.mark_processed(item.external_id)

        logger.info(
            "Processed feed for @%s",
            handle,
            extra={
                "event": "batch_author",
                "author": handle,
                "succeeded": len(outcome.succeeded),
                "failed": len(outcome.failed),
                "skipped": len(outcome.skipped),
            },
        )
        return outcome


async def run_author(handle: str, **pipeline_kwargs) -> BatchResult:
    """Run the author pipeline with its own session, for scheduled and background callers."""
    db = get_session_maker()()
    try:
        return await IngestPipeline(db, **pipeline_kwargs).process_author(handle)
    finally:
        db.close()

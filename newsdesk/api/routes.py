from fastapi import APIRouter, Body, Depends, Query, Request
from sqlalchemy.orm import Session

from newsdesk.core.errors import ValidationError
from newsdesk.core.responses import batch_response, success_response
from newsdesk.db.session import get_db
from newsdesk.schemas import (
    ContentRecordOut,
    ContentRecordPatch,
    FreeTextRequest,
    IngestByIdsRequest,
    SchedulerStatusOut,
)
from newsdesk.services.dedup import get_dedup_cache
from newsdesk.services.ingestion.upstream import UpstreamClient
from newsdesk.services.persister import list_records, update_record
from newsdesk.services.pipeline import IngestPipeline
from newsdesk.services.scheduler import PollScheduler
from newsdesk.services.transformer import Transformer

router = APIRouter(prefix="/api", tags=["api"])


def get_fetcher() -> UpstreamClient:
    return UpstreamClient()


def get_transformer() -> Transformer:
    return Transformer()


def get_pipeline(
    db: Session = Depends(get_db),
    fetcher: UpstreamClient = Depends(get_fetcher),
    transformer: Transformer = Depends(get_transformer),
) -> IngestPipeline:
    return IngestPipeline(db, fetcher=fetcher, transformer=transformer, cache=get_dedup_cache())


def get_scheduler(request: Request) -> PollScheduler:
    return request.app.state.scheduler


@router.post("/fetch-tweet-and-save")
async def ingest_ids(payload: IngestByIdsRequest, pipeline: IngestPipeline = Depends(get_pipeline)):
    result = await pipeline.process_ids(payload.tweet_ids)
    return batch_response("Processed requested items", result.as_dict())


@router.get("/fetch-tweet-and-save")
async def ingest_ids_query(
    tweet_ids: str = Query(default=""),
    pipeline: IngestPipeline = Depends(get_pipeline),
):
    ids = [part.strip() for part in tweet_ids.split(",") if part.strip()]
    if not ids:
        raise ValidationError("tweet_ids query parameter is required")
    result = await pipeline.process_ids(ids)
    return batch_response("Processed requested items", result.as_dict())


@router.get("/fetch-user-last-tweets")
async def ingest_author(
    user_name: str = Query(default="", alias="userName"),
    pipeline: IngestPipeline = Depends(get_pipeline),
):
    handle = user_name.strip().lstrip("@")
    if not handle:
        raise ValidationError("userName query parameter is required")
    result = await pipeline.process_author(handle)
    return batch_response(f"Processed latest items for @{handle}", result.as_dict(), include_skipped=True)


@router.post("/summarize-text")
async def summarize_text(payload: FreeTextRequest, transformer: Transformer = Depends(get_transformer)):
    result = await transformer.format_free_text(payload.text, payload.instruction)
    return success_response(result.as_dict(), meta={"degraded": result.degraded})


@router.get("/articles")
def get_records(db: Session = Depends(get_db)):
    records = list_records(db)
    return success_response([ContentRecordOut.model_validate(r).model_dump(mode="json") for r in records])


@router.post("/update-article/{record_id}")
@router.patch("/articles/{record_id}")
def patch_record(record_id: int, payload: ContentRecordPatch = Body(...), db: Session = Depends(get_db)):
    record = update_record(db, record_id, payload.model_dump(exclude_unset=True))
    return success_response(ContentRecordOut.model_validate(record).model_dump(mode="json"))


@router.get("/run-cron-twitter")
async def run_scheduler_now(scheduler: PollScheduler = Depends(get_scheduler)):
    results = await scheduler.tick()
    return {"message": "Scheduled fetch completed for all authors", "results": results}


@router.get("/scheduler")
def scheduler_status(scheduler: PollScheduler = Depends(get_scheduler)):
    return success_response(SchedulerStatusOut(**scheduler.status()).model_dump(mode="json"))

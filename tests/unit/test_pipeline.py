import asyncio
from datetime import datetime, timedelta

import pytest

from helpers import FakeClock, FakeFetcher, echo_format_item, failing_format_item, make_item
from newsdesk.core.errors import UpstreamFetchError
from newsdesk.services import persister
from newsdesk.services import pipeline as pipeline_module
from newsdesk.services.dedup import DedupCache
from newsdesk.services.persister import PipelineProfile
from newsdesk.services.pipeline import NOT_FOUND_REASON, IngestPipeline
from newsdesk.services.transformer import Transformer


class CountingFormat:
    def __init__(self, fn=echo_format_item):
        self.fn = fn
        self.texts: list[str] = []

    async def __call__(self, text):
        self.texts.append(text)
        return await self.fn(text)


def _pipeline(db, fetcher, format_fn=None, clock=None, mark_failures=True):
    clock = clock or FakeClock(datetime(2025, 10, 14, 8, 0))
    cache = DedupCache(ttl=timedelta(hours=12), clock=clock)
    return IngestPipeline(
        db,
        fetcher=fetcher,
        transformer=Transformer(format_item_fn=format_fn or echo_format_item),
        cache=cache,
        profile=PipelineProfile(),
        mark_failures=mark_failures,
    )


def test_batch_isolates_failures(db):
    fetcher = FakeFetcher(items=[make_item("A", "Alpha Story"), make_item("C", "Gamma Story")])

    result = asyncio.run(_pipeline(db, fetcher).process_ids(["A", "B", "C"]))

    assert [r.external_id for r in result.succeeded] == ["A", "C"]
    assert [(f.id, f.reason) for f in result.failed] == [("B", NOT_FOUND_REASON)]
    assert len(result.succeeded) + len(result.failed) == 3


def test_batch_reports_already_stored_items_as_failed(db):
    fetcher = FakeFetcher(items=[make_item("A", "Alpha Story"), make_item("C", "Gamma Story")])
    pipeline = _pipeline(db, fetcher)
    asyncio.run(pipeline.process_ids(["C"]))

    result = asyncio.run(pipeline.process_ids(["A", "C"]))

    assert [r.external_id for r in result.succeeded] == ["A"]
    [failure] = result.failed
    assert failure.id == "C"
    assert "already exists" in failure.reason


def test_store_race_keeps_earlier_successes_serializable(db, monkeypatch):
    # Another run stored item 2 after this run's pre-check; the unique index decides.
    asyncio.run(_pipeline(db, FakeFetcher(items=[make_item("2", "Second Post")])).process_ids(["2"]))
    monkeypatch.setattr(persister, "_find_conflict", lambda *args, **kwargs: None)
    fetcher = FakeFetcher(author_items={"newsroom": [make_item("1", "First Post"), make_item("2", "Second Post")]})

    result = asyncio.run(_pipeline(db, fetcher).process_author("newsroom"))

    assert [r.external_id for r in result.succeeded] == ["1"]
    [failure] = result.failed
    assert failure.id == "2"
    assert "Uniqueness violation" in failure.reason
    payload = result.as_dict()
    assert payload["succeeded"][0]["slug"] == "first-post"


def test_unexpected_store_error_rolls_back_and_continues(db, monkeypatch):
    real_upsert = persister.upsert_from_item

    def flaky_upsert(session, item, result, profile=None):
        if item.external_id == "1":
            raise RuntimeError("connection reset")
        return real_upsert(session, item, result, profile)

    monkeypatch.setattr(pipeline_module, "upsert_from_item", flaky_upsert)
    fetcher = FakeFetcher(items=[make_item("1", "Lost Post"), make_item("2", "Kept Post")])

    result = asyncio.run(_pipeline(db, fetcher).process_ids(["1", "2"]))

    assert [(f.id, f.reason) for f in result.failed] == [("1", "Unexpected error: connection reset")]
    assert [r.external_id for r in result.succeeded] == ["2"]


def test_ids_are_fetched_once_and_deduplicated(db):
    fetcher = FakeFetcher(items=[make_item("A", "Alpha Story")])
    asyncio.run(_pipeline(db, fetcher).process_ids(["A", "A", " "]))
    assert fetcher.calls == [("ids", ["A"])]


def test_fetch_error_fails_every_requested_id(db):
    fetcher = FakeFetcher(error=UpstreamFetchError("Upstream API request failed (503)"))
    result = asyncio.run(_pipeline(db, fetcher).process_ids(["1", "2"]))

    assert result.succeeded == []
    assert [f.id for f in result.failed] == ["1", "2"]
    assert all("503" in f.reason for f in result.failed)


def test_degraded_transform_still_persists(db):
    fetcher = FakeFetcher(items=[make_item("D", "Delta Story")])
    result = asyncio.run(_pipeline(db, fetcher, format_fn=failing_format_item).process_ids(["D"]))

    [record] = result.succeeded
    assert record.is_fallback
    assert record.status.value == "draft"


def test_author_mode_skips_recent_items_without_transforming(db):
    items = [make_item("1", "First Post"), make_item("2", "Second Post")]
    fetcher = FakeFetcher(author_items={"newsroom": items})
    counter = CountingFormat()
    pipeline = _pipeline(db, fetcher, format_fn=counter)

    first = asyncio.run(pipeline.process_author("newsroom"))
    second = asyncio.run(pipeline.process_author("newsroom"))

    assert len(first.succeeded) == 2
    assert second.succeeded == []
    assert second.skipped == ["1", "2"]
    assert counter.texts == ["First Post", "Second Post"]


def test_author_mode_reprocesses_after_ttl(db):
    clock = FakeClock(datetime(2025, 10, 14, 8, 0))
    fetcher = FakeFetcher(author_items={"newsroom": [make_item("1", "First Post")]})
    pipeline = _pipeline(db, fetcher, clock=clock)

    asyncio.run(pipeline.process_author("newsroom"))
    clock.advance(timedelta(hours=12, minutes=1))
    again = asyncio.run(pipeline.process_author("newsroom"))

    assert again.skipped == []
    # The store still rejects the second write.
    assert [f.id for f in again.failed] == ["1"]


@pytest.mark.parametrize("mark_failures, expected_skipped", [(True, ["1"]), (False, [])])
def test_failed_items_marking_is_configurable(db, mark_failures, expected_skipped):
    fetcher = FakeFetcher(author_items={"newsroom": [make_item("1", "Taken Slug")]})
    pipeline = _pipeline(db, fetcher, mark_failures=mark_failures)
    asyncio.run(_pipeline(db, FakeFetcher(items=[make_item("0", "Taken Slug")])).process_ids(["0"]))

    first = asyncio.run(pipeline.process_author("newsroom"))
    second = asyncio.run(pipeline.process_author("newsroom"))

    assert [f.id for f in first.failed] == ["1"]
    assert second.skipped == expected_skipped


def test_author_fetch_error_propagates(db):
    fetcher = FakeFetcher(error=UpstreamFetchError("down"))
    with pytest.raises(UpstreamFetchError):
        asyncio.run(_pipeline(db, fetcher).process_author("newsroom"))


def test_batch_result_serializes_records(db):
    fetcher = FakeFetcher(items=[make_item("S", "Serialized Story")])
    payload = asyncio.run(_pipeline(db, fetcher).process_ids(["S", "T"])).as_dict()

    assert payload["succeeded"][0]["slug"] == "serialized-story"
    assert payload["failed"] == [{"id": "T", "reason": NOT_FOUND_REASON}]
    assert payload["skipped"] == []

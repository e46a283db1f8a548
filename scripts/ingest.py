import argparse
import asyncio
import json

from newsdesk.core.config import get_settings
from newsdesk.core.logging_config import configure_logging
from newsdesk.db.init_db import init_db
from newsdesk.db.session import get_session_maker
from newsdesk.services.pipeline import IngestPipeline
from newsdesk.services.scheduler import build_scheduler


async def ingest(ids: list[str], author: str | None) -> dict:
    db = get_session_maker()()
    try:
        pipeline = IngestPipeline(db)
        if author:
            return (await pipeline.process_author(author)).as_dict()
        return (await pipeline.process_ids(ids)).as_dict()
    finally:
        db.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the newsdesk ingest pipeline once")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--ids", help="Comma-separated upstream item ids")
    group.add_argument("--author", help="Author handle whose latest items should be ingested")
    group.add_argument("--tick", action="store_true", help="Run one scheduler tick over the configured authors")
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(json_format=settings.log_json, level=settings.log_level)
    init_db()

    if args.tick:
        result = asyncio.run(build_scheduler().tick())
    else:
        ids = [part.strip() for part in (args.ids or "").split(",") if part.strip()]
        if args.ids is not None and not ids:
            parser.error("--ids needs at least one id")
        result = asyncio.run(ingest(ids, args.author))
    print(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()

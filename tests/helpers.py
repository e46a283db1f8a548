from newsdesk.schemas.common import FormattedFields, FreeTextOutput
from newsdesk.services.ingestion.common import Item


def make_tweet(tweet_id: str, text: str, handle: str = "newsroom", **extra) -> dict:
    payload = {
        "id": tweet_id,
        "text": text,
        "url": f"https://x.com/{handle}/status/{tweet_id}",
        "createdAt": "Tue Oct 14 09:30:00 +0000 2025",
        "lang": "en",
        "author": {"name": handle.title(), "userName": handle},
    }
    payload.update(extra)
    return payload


def make_item(external_id: str, text: str, handle: str = "newsroom") -> Item:
    return Item(
        external_id=external_id,
        text=text,
        author_name=handle.title(),
        author_handle=handle,
        url=f"https://x.com/{handle}/status/{external_id}",
    )


def formatted_from_text(text: str) -> FormattedFields:
    return FormattedFields(
        title=text,
        summary=f"Summary of {text}",
        slug=text,
        tags=["news", "test"],
        localized_slug=f"వార్త {text}",
        localized_tags=["వార్తలు"],
    )


async def echo_format_item(text: str):
    return formatted_from_text(text), {"provider": "fake", "model": "echo"}


async def echo_free_text(text: str, instruction: str):
    return FreeTextOutput(title=f"{instruction}: {text[:20]}", summary=text), {"provider": "fake"}


async def failing_format_item(text: str):
    raise RuntimeError("provider unavailable")


async def failing_free_text(text: str, instruction: str):
    raise RuntimeError("provider unavailable")


class FakeFetcher:
    """Serves items from memory and records every call."""

    def __init__(self, items=None, author_items=None, error=None):
        self.items = {item.external_id: item for item in (items or [])}
        self.author_items = author_items or {}
        self.error = error
        self.calls: list[tuple[str, object]] = []

    async def fetch_by_ids(self, ids):
        self.calls.append(("ids", list(ids)))
        if self.error:
            raise self.error
        return [self.items[i] for i in ids if i in self.items]

    async def fetch_by_author(self, handle):
        self.calls.append(("author", handle))
        if self.error:
            raise self.error
        return list(self.author_items.get(handle, []))


class FakeClock:
    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now = self.now + delta

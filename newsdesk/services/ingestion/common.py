from datetime import UTC, datetime

from pydantic import BaseModel, Field

from newsdesk.schemas.common import UpstreamTweet

TWITTER_DATE_FORMAT = "%a %b %d %H:%M:%S %z %Y"


class Item(BaseModel):
    external_id: str
    text: str = ""
    author_name: str = ""
    author_handle: str = ""
    url: str | None = None
    created_at: datetime | None = None
    media_urls: list[str] = Field(default_factory=list)
    lang: str | None = None


def parse_created_at(value: str | None) -> datetime | None:
    if not value:
        return None
    for parser in (
        lambda raw: datetime.strptime(raw, TWITTER_DATE_FORMAT),
        lambda raw: datetime.fromisoformat(raw.replace("Z", "+00:00")),
    ):
        try:
            parsed = parser(value)
        except ValueError:
            continue
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(UTC).replace(tzinfo=None)
        return parsed
    return None


def item_from_upstream(tweet: UpstreamTweet) -> Item:
    media = tweet.extended_entities.media if tweet.extended_entities else []
    handle = tweet.author.user_name
    url = tweet.url
    if not url and handle:
        url = f"https://x.com/{handle}/status/{tweet.id}"
    return Item(
        external_id=tweet.id,
        text=tweet.text,
        author_name=tweet.author.name,
        author_handle=handle,
        url=url,
        created_at=parse_created_at(tweet.created_at),
        media_urls=[m.media_url_https for m in media if m.media_url_https],
        lang=tweet.lang,
    )

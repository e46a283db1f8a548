from datetime import UTC, datetime


def now_utc() -> datetime:
    # Naive UTC, matching the DateTime columns.
    return datetime.now(UTC).replace(tzinfo=None)


def epoch_ms(value: datetime | None = None) -> int:
    value = value or now_utc()
    return int(value.replace(tzinfo=UTC).timestamp() * 1000)

"""Fixed-width time buckets.

Every aggregate and evidence row is keyed by the start of its bucket.
Bucket starts are exact multiples of the width in epoch seconds, so two
processes scanning in the same window always agree on the key.
"""

from datetime import datetime, timedelta, timezone

DEFAULT_BUCKET_WIDTH = timedelta(minutes=15)


def as_utc(ts: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def bucket_start(ts: datetime, width: timedelta = DEFAULT_BUCKET_WIDTH) -> datetime:
    """
    Floor a timestamp to the start of its bucket.

    Naive datetimes are treated as UTC.

    Raises:
        ValueError: If the width is not a positive whole number of seconds
    """
    width_seconds = int(width.total_seconds())
    if width_seconds <= 0 or width_seconds != width.total_seconds():
        raise ValueError(f"Bucket width must be a positive whole number of seconds: {width}")
    epoch = int(as_utc(ts).timestamp())
    return datetime.fromtimestamp(epoch - epoch % width_seconds, tz=timezone.utc)


def previous_bucket(bucket: datetime, width: timedelta = DEFAULT_BUCKET_WIDTH) -> datetime:
    return bucket_start(bucket, width) - width


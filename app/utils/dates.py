"""Timezone helpers.

All timestamps are stored timezone-aware (UTC). Some drivers hand naive
values back; ``as_utc`` normalises them before arithmetic.
"""

from datetime import UTC, datetime


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)

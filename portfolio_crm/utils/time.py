from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def elapsed_seconds(started_at: Optional[datetime], finished_at: Optional[datetime] = None) -> Optional[float]:
    """Seconds between two timestamps (naive values are treated as UTC)."""
    if started_at is None:
        return None
    finished_at = finished_at or utc_now()
    if started_at.tzinfo is None:
        started_at = started_at.replace(tzinfo=timezone.utc)
    if finished_at.tzinfo is None:
        finished_at = finished_at.replace(tzinfo=timezone.utc)
    return round((finished_at - started_at).total_seconds(), 3)

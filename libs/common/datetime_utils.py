"""Datetime utilities for timezone-aware UTC timestamps.

Usage:
    from libs.common.datetime_utils import utc_now

    collected_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    order.collected_date = utc_now()
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime.

    Use this instead of ``datetime.utcnow()``, which returns naive values.
    """
    return datetime.now(timezone.utc)


def utc_now_ms() -> int:
    """Milliseconds since the epoch, used in client-generated order numbers."""
    return int(utc_now().timestamp() * 1000)

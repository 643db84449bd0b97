"""UTC time helpers.

Timestamps are stored as naive UTC datetimes and rendered with a Z suffix.
"""

from datetime import datetime, timezone


def utcnow():
    """Current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_isoformat(dt):
    """Convert datetime to ISO format with Z suffix to indicate UTC."""
    if dt is None:
        return None
    return dt.isoformat() + 'Z'

# ticketflow/utils/datetime_utils.py
"""
Strict UTC datetime handling.
Timestamps are stored as naive UTC and serialized with a 'Z' suffix.
"""
from datetime import datetime, timezone
from typing import Optional


def get_utc_now() -> datetime:
    """
    Get current UTC time as naive datetime.
    Use this instead of datetime.utcnow().
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
    """
    Convert datetime to ISO string with UTC timezone.

    Args:
        dt: datetime object (assumed UTC if naive)

    Returns:
        ISO format string with 'Z' suffix (UTC), or None
    """
    if dt is None:
        return None

    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)

    return dt.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z'

"""
Timezone utilities for the backend.
Timestamps are stored as timezone-aware UTC; schedules are wall-clock times
in the business timezone.
"""
import logging
from datetime import datetime, timezone

import pytz

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-aware datetime.

    This should be used instead of datetime.utcnow() which returns
    a naive datetime that can be misinterpreted by PostgreSQL.
    """
    return datetime.now(timezone.utc)


def local_now(timezone_name: str) -> datetime:
    """
    Return the current wall-clock time in the given IANA timezone as a
    naive datetime, comparable with schedule times anchored on a date.

    Falls back to UTC when the timezone name is unknown.
    """
    try:
        tz = pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        logger.warning("Unknown timezone %r, using UTC", timezone_name)
        tz = pytz.UTC
    return utc_now().astimezone(tz).replace(tzinfo=None)

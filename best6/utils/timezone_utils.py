"""
Timezone utility functions for the Best6 prediction game
"""

from datetime import datetime, timezone

import pytz
from flask import current_app, has_app_context

_default_timezone_name = "UTC"


def set_app_timezone(timezone_name):
    """Set the timezone used outside of a Flask application context"""
    global _default_timezone_name
    _default_timezone_name = timezone_name or "UTC"


def get_app_timezone():
    """Get the application's configured timezone"""
    if has_app_context():
        timezone_name = current_app.config.get("TIMEZONE", _default_timezone_name)
    else:
        timezone_name = _default_timezone_name
    try:
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        # Fallback to UTC if timezone is invalid
        return pytz.UTC


def get_current_time():
    """Get current time in the application's timezone"""
    return datetime.now(get_app_timezone())


def get_utc_time():
    """Get current time in UTC"""
    return datetime.now(timezone.utc)


def convert_to_app_timezone(dt):
    """Convert a datetime to the application's timezone"""
    if dt is None:
        return None

    # If datetime is naive, assume it's UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(get_app_timezone())


def parse_iso(value):
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Accepts the trailing ``Z`` produced by JavaScript clients and
    football-data.org. Returns None for empty or malformed values.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(dt):
    """Format a datetime as a UTC ISO-8601 string with millisecond precision"""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def format_kickoff(value, format_str="%b %d - %H:%M"):
    """Format a kickoff time in the application's timezone"""
    dt = parse_iso(value)
    if dt is None:
        return ""
    return convert_to_app_timezone(dt).strftime(format_str)


def current_season_year(now=None):
    """Season start year; a new season starts in August"""
    now = convert_to_app_timezone(now) if now else get_current_time()
    return now.year if now.month >= 8 else now.year - 1

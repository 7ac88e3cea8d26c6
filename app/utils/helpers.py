"""Shared request-parsing helpers for blueprints and services.

parse_date:      ISO or DD.MM.YYYY → date, None on bad input
parse_datetime:  ISO timestamp → aware datetime, None on bad input
parse_int_arg:   bounded integer query parameter
get_json_body:   JSON object body or None
"""
import logging
from datetime import date, datetime, timezone

from flask import request

logger = logging.getLogger(__name__)


def parse_date(value):
    """Parse a date string (ISO or DD.MM.YYYY) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD (ISO format)
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    - DD.MM.YYYY (German format)
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value)).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%d.%m.%Y").date()
    except (ValueError, TypeError):
        return None


def parse_datetime(value):
    """Parse an ISO timestamp; naive values are taken as UTC.  None on bad input."""
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        raw = str(value).strip().replace("Z", "+00:00")
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_int_arg(name, default, *, minimum=0, maximum=None):
    """Integer query parameter clamped to [minimum, maximum]; ValueError if not an int."""
    raw = request.args.get(name)
    if raw in (None, ""):
        return default
    value = int(raw)
    value = max(minimum, value)
    if maximum is not None:
        value = min(maximum, value)
    return value


def get_json_body():
    """The request's JSON object, ``{}`` for an empty body, None when malformed."""
    if not request.get_data(cache=True):
        return {}
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        logger.debug("Rejected non-object JSON body on %s", request.path)
        return None
    return data

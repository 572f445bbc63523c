"""Shared parsing and lookup helpers.

parse_date_input:    raises ValueError on bad input (strict, for required dates)
parse_time_of_day:   24h "HH:MM" → datetime.time, raises ValueError
parse_bool:          JSON/query-string truthiness
get_or_404:          primary-key fetch that raises NotFoundError
"""
import logging
from datetime import date, datetime, time

from app.core.exceptions import NotFoundError
from app.models import db

logger = logging.getLogger(__name__)


def parse_date_input(value):
    """Parse a date string, raising ValueError on bad input.

    Datetime strings keep only their calendar date part so a value like
    ``2025-10-01T00:00:00.000Z`` never shifts to the previous day.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Invalid date value: {value!r}")
    text = value.strip()
    if "T" in text:
        text = text.split("T", 1)[0]
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"Invalid date format: {value!r}. Use YYYY-MM-DD.") from exc


def parse_time_of_day(value) -> time:
    """Parse a 24h ``HH:MM`` string into a ``time``.

    Raises:
        ValueError: if the value is not a valid 24h time.
    """
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Invalid time value: {value!r}")
    try:
        return datetime.strptime(value.strip(), "%H:%M").time()
    except ValueError as exc:
        raise ValueError(f"Invalid time format: {value!r}. Use 24h HH:MM.") from exc


def parse_bool(value, default: bool = False) -> bool:
    """Interpret JSON booleans and query-string flags ("true", "1", "yes")."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def get_or_404(model, pk, label=None):
    """Fetch a model instance by primary key or raise NotFoundError."""
    label = label or model.__name__
    obj = db.session.get(model, pk)
    if obj is None:
        raise NotFoundError(resource=label, resource_id=pk)
    return obj

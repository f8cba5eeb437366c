import math
from collections.abc import Mapping
from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .conf import lms_setting


def is_number(value):
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, Decimal)):
        return True
    return isinstance(value, float) and math.isfinite(value)


def round_half_up(value):
    """Round .5 away from zero for positive values (0.5 -> 1, 2.5 -> 3)."""
    return int(math.floor(float(value) + 0.5))


def clamp_pct(value):
    return max(0, min(100, round_half_up(value)))


def percent_of(part, whole):
    """Whole-number percent of part/whole, 0 when whole is empty."""
    if not whole:
        return 0
    return clamp_pct(float(part) / float(whole) * 100)


def mean_pct(values):
    values = list(values)
    if not values:
        return 0
    return round_half_up(sum(values) / len(values))


def chunked(items, size=None):
    """Split a sequence into lists no longer than the store's IN-query limit."""
    size = size or lms_setting('IN_QUERY_BATCH_SIZE')
    items = list(items)
    return [items[i:i + size] for i in range(0, len(items), size)]


def resolve_legacy_numeric(doc, field_names):
    """
    Return the first numeric value found under field_names.

    Works on model instances (attributes) and dict-like documents, so legacy
    JSON blobs and typed columns can be searched with one ordered list.
    """
    if doc is None:
        return None
    for name in field_names:
        if isinstance(doc, Mapping):
            value = doc.get(name)
        else:
            value = getattr(doc, name, None)
        if is_number(value):
            return float(value)
    return None


def to_datetime(value):
    """Coerce datetimes, ISO strings, dates and epoch millis to aware datetimes."""
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        if timezone.is_naive(value):
            return timezone.make_aware(value, dt_timezone.utc)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=dt_timezone.utc)
    if is_number(value):
        return datetime.fromtimestamp(float(value) / 1000.0, tz=dt_timezone.utc)
    if isinstance(value, str):
        parsed = parse_datetime(value.strip())
        if parsed is None:
            try:
                parsed = datetime.fromisoformat(value.strip())
            except ValueError:
                return None
        return to_datetime(parsed)
    return None

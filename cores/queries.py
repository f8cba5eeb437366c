import logging

from django.db import DatabaseError, transaction

from .conf import lms_setting

logger = logging.getLogger(__name__)


def delete_in_chunks(queryset, chunk_size=None):
    """
    Delete everything a queryset matches, chunk_size rows per batch.

    Re-runs the query until it comes back empty so result sets larger than
    one batch are handled without a single oversized transaction.
    """
    chunk_size = chunk_size or lms_setting('DELETE_BATCH_SIZE')
    model = queryset.model
    total = 0
    while True:
        pks = list(queryset.order_by().values_list('pk', flat=True)[:chunk_size])
        if not pks:
            break
        with transaction.atomic():
            deleted, _ = model.objects.filter(pk__in=pks).delete()
        total += deleted
    return total


def sort_rows(rows, ordering):
    """Stable in-memory ordering; rows missing a value go last in either direction."""
    for field in reversed(ordering):
        name = field.lstrip('-')
        present = [row for row in rows if getattr(row, name, None) is not None]
        missing = [row for row in rows if getattr(row, name, None) is None]
        present.sort(key=lambda row: getattr(row, name), reverse=field.startswith('-'))
        rows[:] = present + missing
    return rows


def fetch_ordered(queryset, *ordering, label=''):
    """
    Evaluate queryset with the given ordering.

    If the backend rejects the ordered plan (missing index, unsupported
    collation...) fall back to the unordered query and sort in memory.
    """
    try:
        with transaction.atomic():
            return list(queryset.order_by(*ordering))
    except DatabaseError as exc:
        logger.warning("[%s] ordered query failed (%s); sorting in memory", label or queryset.model.__name__, exc)
    return sort_rows(list(queryset), ordering)

"""Django signals for cache invalidation.

Occurrence lists are cached per series and date window. Every cached key of a
series embeds the series' current cache generation; replacing the generation
invalidates all of them at once.
"""

from datetime import date
from uuid import uuid4

from django.core.cache import cache
from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from scheduling.models import Occurrence, Series, SkipDate


def _generation_key(series_id) -> str:
    return f"scheduling:series:{series_id}:generation"


def occurrences_cache_key(series_id, start: date | None, end: date | None) -> str:
    generation = cache.get_or_set(_generation_key(series_id), uuid4().hex, None)
    window = f"{start.isoformat() if start else ''}:{end.isoformat() if end else ''}"
    return f"scheduling:series:{series_id}:occurrences:{generation}:{window}"


def invalidate_series_cache(series_id) -> None:
    cache.set(_generation_key(series_id), uuid4().hex, None)


def _invalidate(series_id) -> None:
    invalidate_series_cache(series_id)
    # again after commit, so a read racing the open transaction is not kept
    transaction.on_commit(lambda: invalidate_series_cache(series_id))


@receiver([post_save, post_delete], sender=Series)
def invalidate_series(sender, instance, **kwargs):
    """Invalidate caches when a series is saved or deleted."""
    _invalidate(instance.pk)


@receiver([post_save, post_delete], sender=Occurrence)
def invalidate_occurrence(sender, instance, **kwargs):
    """Invalidate the owning series' caches when an occurrence changes."""
    _invalidate(instance.series_id)


@receiver([post_save, post_delete], sender=SkipDate)
def invalidate_skip_date(sender, instance, **kwargs):
    """Invalidate the owning series' caches when a skip date changes."""
    _invalidate(instance.series_id)

"""Tests for cache behavior.

Run with: pytest tests/test_cache.py -v
"""

from datetime import date

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from scheduling import models
from scheduling.signals import occurrences_cache_key
from tests.factories import make_draft

FEBRUARY = {"start": "2024-02-01", "end": "2024-02-29"}


@pytest.fixture
def series(services):
    series = services.series_store.create_series(make_draft())
    services.series_store.materialize(series.id, date(2024, 3, 31))
    return series


def _february_key(series) -> str:
    return occurrences_cache_key(series.id.value, date(2024, 2, 1), date(2024, 2, 29))


def _capacities(api_client: APIClient, series) -> list[int]:
    response = api_client.get(f"/api/series/{series.id}/occurrences", FEBRUARY)
    return [occ["capacity"] for occ in response.data["results"]]


@pytest.mark.django_db
class TestCacheInvalidation:
    """Tests for cache invalidation on model changes."""

    def test_occurrence_list_is_cached(self, api_client: APIClient, series):
        """Listing occurrences stores the payload under the window key."""
        _capacities(api_client, series)

        cached = cache.get(_february_key(series))
        assert len(cached["results"]) == 4

    def test_bulk_update_serves_cached_list(self, api_client: APIClient, series):
        """Queryset updates send no signals, so the cached list is served."""
        _capacities(api_client, series)
        models.Occurrence.objects.filter(series_id=series.id.value).update(capacity=5)

        assert _capacities(api_client, series) == [20, 20, 20, 20]

    def test_occurrence_save_invalidates_list_cache(self, api_client: APIClient, series):
        """Saving an occurrence invalidates the series' occurrence lists."""
        _capacities(api_client, series)
        row = models.Occurrence.objects.get(series_id=series.id.value, date=date(2024, 2, 5))
        row.capacity = 5
        row.save()

        assert _capacities(api_client, series) == [5, 20, 20, 20]

    def test_skip_date_save_invalidates_list_cache(self, api_client: APIClient, series):
        """Adding a skip date changes the cache key of every window."""
        before = _february_key(series)
        models.SkipDate.objects.create(series_id=series.id.value, date=date(2024, 2, 12))

        assert _february_key(series) != before

    def test_series_save_invalidates_list_cache(self, api_client: APIClient, series):
        """Saving the series changes the cache key of every window."""
        before = _february_key(series)
        row = models.Series.objects.get(pk=series.id.value)
        row.name = "Power Flow"
        row.save()

        assert _february_key(series) != before

    def test_other_series_cache_is_kept(self, api_client: APIClient, services, series):
        """Changes to one series leave other series' caches alone."""
        other = services.series_store.create_series(make_draft(name="Yin"))
        before = _february_key(other)

        services.series_store.pause(series.id)

        assert _february_key(other) == before

    def test_change_through_api_is_visible(self, api_client: APIClient, series):
        """A committed change is listed right away."""
        _capacities(api_client, series)
        api_client.post(
            f"/api/series/{series.id}/changes",
            {"from_date": "2024-02-12", "scope": "this_only", "changes": {"capacity": 8}},
            format="json",
        )

        assert _capacities(api_client, series) == [20, 8, 20, 20]

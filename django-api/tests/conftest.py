"""Pytest configuration and shared fixtures."""

from datetime import date

import pytest
from rest_framework.test import APIClient

from scheduling.gateways.memory import (
    InMemoryBookingGateway,
    LoggingNotificationGateway,
    StaticDirectoryGateway,
)
from scheduling.services.change_applier import ChangeApplier
from scheduling.services.impact import ImpactCalculator
from scheduling.services.scope_resolver import EditScopeResolver
from scheduling.services.series_store import SeriesStore
from scheduling.stores.memory_store import InMemoryScheduleStore
from tests.factories import TODAY, make_draft


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def store() -> InMemoryScheduleStore:
    return InMemoryScheduleStore()


@pytest.fixture
def bookings() -> InMemoryBookingGateway:
    return InMemoryBookingGateway()


@pytest.fixture
def notifications() -> LoggingNotificationGateway:
    return LoggingNotificationGateway()


@pytest.fixture
def directory() -> StaticDirectoryGateway:
    return StaticDirectoryGateway(
        instructor_ids={"instructor-1", "instructor-2"},
        location_ids={"studio-1", "studio-2"},
    )


@pytest.fixture
def series_store(store, directory) -> SeriesStore:
    return SeriesStore(store, directory, generate_ahead_weeks=12, today=lambda: TODAY)


@pytest.fixture
def resolver(store) -> EditScopeResolver:
    return EditScopeResolver(store)


@pytest.fixture
def impact(store, bookings) -> ImpactCalculator:
    return ImpactCalculator(store, bookings)


@pytest.fixture
def applier(store, series_store, resolver, impact, bookings, notifications) -> ChangeApplier:
    return ChangeApplier(store, series_store, resolver, impact, bookings, notifications)


@pytest.fixture
def weekly_series(series_store):
    """Monday series materialized through 2024-03-31 (12 occurrences)."""
    series = series_store.create_series(make_draft())
    series_store.materialize(series.id, date(2024, 3, 31))
    return series_store.get_series(series.id)


@pytest.fixture
def services():
    """Service graph wired from settings, over the Django store."""
    from scheduling.wiring import services as build

    build.cache_clear()
    yield build()
    build.cache_clear()

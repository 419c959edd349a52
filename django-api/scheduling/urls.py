from django.urls import path

from scheduling.handlers import (
    CancellationView,
    ChangeView,
    MaterializeView,
    OccurrenceListView,
    PreviewView,
    SeriesDetailView,
    SeriesListView,
    SeriesStatusView,
)

urlpatterns = [
    path("series", SeriesListView.as_view(), name="series-list"),
    path("series/<str:series_id>", SeriesDetailView.as_view(), name="series-detail"),
    path(
        "series/<str:series_id>/materialize",
        MaterializeView.as_view(),
        name="series-materialize",
    ),
    path(
        "series/<str:series_id>/occurrences",
        OccurrenceListView.as_view(),
        name="occurrence-list",
    ),
    path("series/<str:series_id>/preview", PreviewView.as_view(), name="series-preview"),
    path("series/<str:series_id>/changes", ChangeView.as_view(), name="series-changes"),
    path(
        "series/<str:series_id>/cancellations",
        CancellationView.as_view(),
        name="series-cancellations",
    ),
    path(
        "series/<str:series_id>/pause",
        SeriesStatusView.as_view(transition="pause"),
        name="series-pause",
    ),
    path(
        "series/<str:series_id>/resume",
        SeriesStatusView.as_view(transition="resume"),
        name="series-resume",
    ),
]

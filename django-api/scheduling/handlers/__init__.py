from scheduling.handlers.views import (
    CancellationView,
    ChangeView,
    MaterializeView,
    OccurrenceListView,
    PreviewView,
    SeriesDetailView,
    SeriesListView,
    SeriesStatusView,
)

__all__ = [
    "SeriesListView",
    "SeriesDetailView",
    "MaterializeView",
    "OccurrenceListView",
    "PreviewView",
    "ChangeView",
    "CancellationView",
    "SeriesStatusView",
]

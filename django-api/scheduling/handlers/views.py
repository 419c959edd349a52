"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

from django.core.cache import cache
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from scheduling.conf import scheduling_setting
from scheduling.domain import SeriesId, SeriesStatus
from scheduling.domain.errors import DomainError, ErrorCode
from scheduling.handlers.serializers import (
    CancellationRequestSerializer,
    ChangeRequestSerializer,
    CommitResultSerializer,
    MaterializeRequestSerializer,
    OccurrenceSerializer,
    OccurrenceWindowSerializer,
    PreviewRequestSerializer,
    PreviewSerializer,
    SeriesCreateSerializer,
    SeriesSerializer,
    build_changes,
    build_policy,
)
from scheduling.signals import occurrences_cache_key
from scheduling.wiring import services

_STATUS_BY_CODE = {
    ErrorCode.INVALID_RULE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_SCOPE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_TRANSITION: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_REFERENCE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.SERIES_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.OCCURRENCE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.CONCURRENT_MODIFICATION: status.HTTP_409_CONFLICT,
}


class InvalidInput(ValueError):
    """Malformed path or query input."""


def _error(code: str, message: str, http_status: int) -> Response:
    return Response({"error": {"code": code, "message": message}}, status=http_status)


def _parse_series_id(series_id: str) -> SeriesId:
    try:
        return SeriesId.from_string(series_id)
    except ValueError as exc:
        raise InvalidInput("Invalid series id") from exc


class SchedulingView(APIView):
    """Base view mapping domain errors to status codes."""

    def handle_exception(self, exc: Exception) -> Response:
        if isinstance(exc, DomainError):
            return _error(exc.code.value, exc.message, _STATUS_BY_CODE[exc.code])
        if isinstance(exc, ValueError):
            # domain value objects reject bad values with user-safe messages
            return _error("INVALID_INPUT", str(exc), status.HTTP_400_BAD_REQUEST)
        return super().handle_exception(exc)


class SeriesListView(SchedulingView):
    """Handler for GET/POST /api/series"""

    def get(self, request: Request) -> Response:
        status_filter = request.query_params.get("status")
        try:
            series_status = SeriesStatus(status_filter) if status_filter else None
        except ValueError as exc:
            raise InvalidInput("Unknown series status") from exc
        series = services().series_store.list_series(series_status)
        return Response({"results": SeriesSerializer(series, many=True).data})

    def post(self, request: Request) -> Response:
        serializer = SeriesCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        series = services().series_store.create_series(serializer.to_draft())
        return Response(SeriesSerializer(series).data, status=status.HTTP_201_CREATED)


class SeriesDetailView(SchedulingView):
    """Handler for GET /api/series/{series_id}"""

    def get(self, request: Request, series_id: str) -> Response:
        series = services().series_store.get_series(_parse_series_id(series_id))
        return Response(SeriesSerializer(series).data)


class MaterializeView(SchedulingView):
    """Handler for POST /api/series/{series_id}/materialize"""

    def post(self, request: Request, series_id: str) -> Response:
        serializer = MaterializeRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        occurrences = services().series_store.materialize(
            _parse_series_id(series_id), serializer.validated_data.get("horizon")
        )
        return Response({"results": OccurrenceSerializer(occurrences, many=True).data})


class OccurrenceListView(SchedulingView):
    """Handler for GET /api/series/{series_id}/occurrences?start=&end="""

    def get(self, request: Request, series_id: str) -> Response:
        parsed_id = _parse_series_id(series_id)
        window = OccurrenceWindowSerializer(data=request.query_params)
        window.is_valid(raise_exception=True)
        start = window.validated_data.get("start")
        end = window.validated_data.get("end")

        key = occurrences_cache_key(parsed_id.value, start, end)
        payload = cache.get(key)
        if payload is None:
            occurrences = services().series_store.get_occurrences(parsed_id, start, end)
            payload = {"results": OccurrenceSerializer(occurrences, many=True).data}
            cache.set(key, payload, scheduling_setting("OCCURRENCE_CACHE_TIMEOUT"))
        return Response(payload)


class PreviewView(SchedulingView):
    """Handler for POST /api/series/{series_id}/preview"""

    def post(self, request: Request, series_id: str) -> Response:
        serializer = PreviewRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        changes = build_changes(data["changes"]) if "changes" in data else None
        preview = services().applier.preview(
            _parse_series_id(series_id), data["from_date"], data["scope"], changes
        )
        return Response(PreviewSerializer(preview).data)


class ChangeView(SchedulingView):
    """Handler for POST /api/series/{series_id}/changes"""

    def post(self, request: Request, series_id: str) -> Response:
        serializer = ChangeRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = services().applier.apply(
            _parse_series_id(series_id),
            data["from_date"],
            data["scope"],
            build_changes(data["changes"]),
            build_policy(data.get("policy")),
            expected_version=data.get("expected_version"),
        )
        return Response(CommitResultSerializer(result).data)


class CancellationView(SchedulingView):
    """Handler for POST /api/series/{series_id}/cancellations"""

    def post(self, request: Request, series_id: str) -> Response:
        serializer = CancellationRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = services().applier.cancel(
            _parse_series_id(series_id),
            data["from_date"],
            data["scope"],
            data["reason"],
            build_policy(data.get("policy")),
            expected_version=data.get("expected_version"),
        )
        return Response(CommitResultSerializer(result).data)


class SeriesStatusView(SchedulingView):
    """Handler for POST /api/series/{series_id}/pause and /resume"""

    transition = ""

    def post(self, request: Request, series_id: str) -> Response:
        series_store = services().series_store
        action = {"pause": series_store.pause, "resume": series_store.resume}[self.transition]
        series = action(_parse_series_id(series_id))
        return Response(SeriesSerializer(series).data)

"""Default gateway implementations.

The booking gateway keeps counts in memory, the notification gateway only
logs, and the directory accepts every id unless given explicit sets.
"""

import logging
import threading
from collections.abc import Iterable

from scheduling.domain import BookingSnapshot, OccurrenceId, ScheduleChangeNotice
from scheduling.gateways.interfaces import BookingGateway, DirectoryGateway, NotificationGateway

logger = logging.getLogger(__name__)


class InMemoryBookingGateway(BookingGateway):
    def __init__(self, bookings: dict[OccurrenceId, BookingSnapshot] | None = None) -> None:
        self._bookings = dict(bookings or {})
        self._lock = threading.Lock()
        self.notices: list[ScheduleChangeNotice] = []

    def set_bookings(self, occurrence_id: OccurrenceId, snapshot: BookingSnapshot) -> None:
        with self._lock:
            self._bookings[occurrence_id] = snapshot

    def snapshot(
        self, occurrence_ids: Iterable[OccurrenceId]
    ) -> dict[OccurrenceId, BookingSnapshot]:
        with self._lock:
            return {
                occurrence_id: self._bookings.get(occurrence_id, BookingSnapshot())
                for occurrence_id in occurrence_ids
            }

    def schedule_changed(self, notice: ScheduleChangeNotice) -> None:
        with self._lock:
            self.notices.append(notice)


class LoggingNotificationGateway(NotificationGateway):
    def notify(self, notice: ScheduleChangeNotice) -> None:
        logger.info(
            "Client notification: %s on series %s for %d occurrence(s)",
            notice.kind,
            notice.series_id,
            len(notice.occurrence_ids),
        )


class StaticDirectoryGateway(DirectoryGateway):
    def __init__(
        self,
        instructor_ids: Iterable[str] | None = None,
        location_ids: Iterable[str] | None = None,
    ) -> None:
        self._instructors = None if instructor_ids is None else frozenset(instructor_ids)
        self._locations = None if location_ids is None else frozenset(location_ids)

    def instructor_exists(self, instructor_id: str) -> bool:
        return self._instructors is None or instructor_id in self._instructors

    def location_exists(self, location_id: str) -> bool:
        return self._locations is None or location_id in self._locations

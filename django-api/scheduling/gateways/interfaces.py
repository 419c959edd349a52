"""Narrow interfaces to collaborators outside the scheduling core."""

from abc import ABC, abstractmethod
from collections.abc import Iterable

from scheduling.domain import BookingSnapshot, OccurrenceId, ScheduleChangeNotice


class BookingGateway(ABC):
    """Booking subsystem: owns booked/waitlist counts and payments."""

    @abstractmethod
    def snapshot(
        self, occurrence_ids: Iterable[OccurrenceId]
    ) -> dict[OccurrenceId, BookingSnapshot]:
        """Return booking state per occurrence. Missing ids have no bookings."""
        ...

    @abstractmethod
    def schedule_changed(self, notice: ScheduleChangeNotice) -> None:
        """Receive a committed change so bookings can be moved, credited or refunded."""
        ...


class NotificationGateway(ABC):
    """Client communications. Fire and forget."""

    @abstractmethod
    def notify(self, notice: ScheduleChangeNotice) -> None:
        ...


class DirectoryGateway(ABC):
    """People and places directory used to validate references."""

    @abstractmethod
    def instructor_exists(self, instructor_id: str) -> bool:
        ...

    @abstractmethod
    def location_exists(self, location_id: str) -> bool:
        ...

"""Impact preview of a prospective change.

Pure function of the current schedule and booking state: nothing here
writes, so previews can be computed concurrently with anything else.
"""

from collections.abc import Iterable

from scheduling.domain import (
    BookingSnapshot,
    EditScope,
    ImpactSummary,
    Money,
    OccurrenceId,
    SeriesChanges,
)
from scheduling.domain.errors import OccurrenceNotFoundError
from scheduling.gateways.interfaces import BookingGateway
from scheduling.stores.interfaces import ScheduleStore


class ImpactCalculator:
    def __init__(self, store: ScheduleStore, bookings: BookingGateway) -> None:
        self._store = store
        self._bookings = bookings

    def compute(
        self,
        affected_occurrence_ids: Iterable[OccurrenceId],
        changes: SeriesChanges | None = None,
        scope: EditScope | None = None,
    ) -> ImpactSummary:
        """Summarize clients, revenue and waitlist touched by a change.

        When ``changes`` lowers the capacity, bookings above the new capacity
        are reported as demoted clients. Exceptions keep their own capacity
        unless ``scope`` is ``this_only``, which targets the exception itself.

        Raises:
            OccurrenceNotFoundError: If an id is unknown.
        """
        ids = list(dict.fromkeys(affected_occurrence_ids))
        occurrences = []
        for occurrence_id in ids:
            occurrence = self._store.get_occurrence(occurrence_id)
            if occurrence is None:
                raise OccurrenceNotFoundError(occurrence_id)
            occurrences.append(occurrence)
        snapshots = self._bookings.snapshot(ids)

        new_capacity = changes.capacity if changes is not None else None
        direct = scope is EditScope.THIS_ONLY

        clients = 0
        waitlist = 0
        refunds = 0
        demoted = 0
        revenue = Money.zero()
        for occurrence in occurrences:
            booking = snapshots.get(occurrence.id, BookingSnapshot())
            if booking.has_payments:
                refunds += 1
            if occurrence.is_cancelled:
                continue
            clients += booking.booked
            waitlist += booking.waitlist
            if booking.booked > 0:
                revenue = revenue + occurrence.price * booking.booked
            if new_capacity is not None and (direct or not occurrence.is_exception):
                demoted += max(0, booking.booked - new_capacity.value)

        return ImpactSummary(
            affected_occurrences=len(occurrences),
            affected_clients=clients,
            revenue_at_risk=revenue,
            waitlist_count=waitlist,
            refunds_required=refunds,
            demoted_clients=demoted,
        )

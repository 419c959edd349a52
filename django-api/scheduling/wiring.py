"""Builds the scheduling service graph from settings.

Handlers and management commands get their services from ``services()``
instead of constructing them, so gateways can be swapped through the
``SCHEDULING`` setting.
"""

from dataclasses import dataclass
from functools import lru_cache

from django.core.signals import setting_changed
from django.dispatch import receiver
from django.utils import timezone
from django.utils.module_loading import import_string

from scheduling.conf import scheduling_setting
from scheduling.domain import OccurrenceGenerator
from scheduling.gateways.interfaces import BookingGateway, DirectoryGateway, NotificationGateway
from scheduling.services.change_applier import ChangeApplier
from scheduling.services.impact import ImpactCalculator
from scheduling.services.scope_resolver import EditScopeResolver
from scheduling.services.series_store import SeriesStore
from scheduling.stores.django_store import DjangoScheduleStore


@dataclass(frozen=True)
class Services:
    series_store: SeriesStore
    resolver: EditScopeResolver
    impact: ImpactCalculator
    applier: ChangeApplier
    bookings: BookingGateway
    notifications: NotificationGateway
    directory: DirectoryGateway


@lru_cache(maxsize=1)
def services() -> Services:
    bookings = import_string(scheduling_setting("BOOKING_GATEWAY"))()
    notifications = import_string(scheduling_setting("NOTIFICATION_GATEWAY"))()
    directory = import_string(scheduling_setting("DIRECTORY_GATEWAY"))()

    store = DjangoScheduleStore()
    generator = OccurrenceGenerator()
    series_store = SeriesStore(
        store,
        directory,
        generator=generator,
        generate_ahead_weeks=scheduling_setting("GENERATE_AHEAD_WEEKS"),
        today=timezone.localdate,
    )
    resolver = EditScopeResolver(store, generator)
    impact = ImpactCalculator(store, bookings)
    applier = ChangeApplier(store, series_store, resolver, impact, bookings, notifications)
    return Services(
        series_store=series_store,
        resolver=resolver,
        impact=impact,
        applier=applier,
        bookings=bookings,
        notifications=notifications,
        directory=directory,
    )


@receiver(setting_changed)
def reset_services(sender, setting, **kwargs):
    if setting == "SCHEDULING":
        services.cache_clear()

"""Scheduling settings.

Projects override any of these through the ``SCHEDULING`` dict in Django
settings; missing keys fall back to the defaults below.
"""

from typing import Any

from django.conf import settings

DEFAULTS: dict[str, Any] = {
    "GENERATE_AHEAD_WEEKS": 12,
    "OCCURRENCE_CACHE_TIMEOUT": 300,
    "BOOKING_GATEWAY": "scheduling.gateways.memory.InMemoryBookingGateway",
    "NOTIFICATION_GATEWAY": "scheduling.gateways.memory.LoggingNotificationGateway",
    "DIRECTORY_GATEWAY": "scheduling.gateways.memory.StaticDirectoryGateway",
}


def scheduling_setting(name: str) -> Any:
    if name not in DEFAULTS:
        raise KeyError(f"Unknown scheduling setting {name}")
    return getattr(settings, "SCHEDULING", {}).get(name, DEFAULTS[name])

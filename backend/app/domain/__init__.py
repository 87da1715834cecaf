"""Domain models representing chain events and their decoded outcomes."""

from .models import EventOutcome, EventsPage, RawEvent

__all__ = [
    "EventOutcome",
    "EventsPage",
    "RawEvent",
]

"""Repository abstractions for database interactions."""

from .block_state_repository import BlockStateRepository
from .event_repository import BetRepository, EventRepository

__all__ = [
    "BetRepository",
    "BlockStateRepository",
    "EventRepository",
]

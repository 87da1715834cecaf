"""Typed domain representations shared by the RPC client, decoder and projector."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class RawEvent:
    """One on-chain emission as returned by ``starknet_getEvents``."""

    from_address: str
    block_number: int | None
    data: list[str] = field(default_factory=list)
    keys: list[str] = field(default_factory=list)
    transaction_hash: str | None = None
    block_hash: str | None = None


@dataclass(slots=True)
class EventsPage:
    """A single page of events plus the token needed to fetch the next one."""

    events: list[RawEvent] = field(default_factory=list)
    continuation_token: str | None = None


@dataclass(slots=True, frozen=True)
class EventOutcome:
    """Decoded ``EventTimeout`` payload."""

    event_address: str
    outcome: int
    timestamp: int

    @property
    def claim_side(self) -> int:
        """Bet side that becomes claimable: side 1 only when the outcome code is 1."""

        return 1 if self.outcome == 1 else 0

from __future__ import annotations

from typing import Protocol, Sequence

import httpx
from loguru import logger

from app.domain import EventsPage, RawEvent

from .client import RpcError


class EventSource(Protocol):
    def block_number(self) -> int: ...

    def get_events(
        self,
        *,
        from_block: int,
        to_block: int,
        address: str,
        keys: Sequence[Sequence[str]],
        chunk_size: int,
        continuation_token: str | None = None,
    ) -> EventsPage: ...


class BlockScanner:
    """Fetch the tracked event emitted by one contract in one block."""

    def __init__(
        self,
        client: EventSource,
        *,
        event_key: str,
        event_name: str = "EventTimeout",
        chunk_size: int = 100,
        follow_continuation: bool = True,
        max_pages: int = 50,
    ) -> None:
        self._client = client
        self.event_key = event_key
        self.event_name = event_name
        self.chunk_size = chunk_size
        self.follow_continuation = follow_continuation
        self.max_pages = max_pages

    def scan(self, address: str, block_number: int) -> list[RawEvent]:
        logger.info("Listening for {} events on contract {} in block {}", self.event_name, address, block_number)
        rpc_address = hex(int(address, 16))

        events: list[RawEvent] = []
        continuation_token: str | None = None
        pages = 0
        while True:
            try:
                page = self._client.get_events(
                    from_block=block_number,
                    to_block=block_number,
                    address=rpc_address,
                    keys=[[self.event_key]],
                    chunk_size=self.chunk_size,
                    continuation_token=continuation_token,
                )
            except (httpx.HTTPError, RpcError) as exc:
                logger.error("Error fetching events for {} in block {}: {}", address, block_number, exc)
                break

            pages += 1
            events.extend(page.events)
            continuation_token = page.continuation_token
            if not continuation_token or not self.follow_continuation:
                break
            if pages >= self.max_pages:
                logger.warning(
                    "Stopped following continuation for {} in block {} after {} pages",
                    address,
                    block_number,
                    pages,
                )
                break

        logger.info("Number of {} events fetched: {}", self.event_name, len(events))
        if not events:
            logger.info("No {} events found for block {} on contract {}", self.event_name, block_number, address)
        return events

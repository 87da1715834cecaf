"""Long-running worker that projects timed-out event resolutions into the database."""

from __future__ import annotations

import argparse
import json
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Sequence

from loguru import logger

from app.core.config import Settings, get_settings
from app.core.logging import configure_logging
from app.db import build_db_components, init_db
from ingestion.client import StarknetRpcClient
from ingestion.cursor import BlockCursor
from ingestion.normalize import decode_event_outcome
from ingestion.projector import OutcomeProjector
from ingestion.registry import AddressRegistry, normalize_contract_address
from ingestion.scanner import BlockScanner, EventSource
from ingestion.selector import selector_hex
from ingestion.service import session_scope_factory


class SyncState(str, Enum):
    IDLE = "idle"
    COMPUTE_RANGE = "compute_range"
    SCAN_BLOCK = "scan_block"
    ADVANCE_CURSOR = "advance_cursor"


@dataclass(slots=True)
class SyncCycleSummary:
    last_processed_block: int | None = None
    latest_block: int | None = None
    from_block: int | None = None
    to_block: int | None = None
    blocks_scanned: int = 0
    events_fetched: int = 0
    events_applied: int = 0
    invalid_events: int = 0
    failures: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "last_processed_block": self.last_processed_block,
            "latest_block": self.latest_block,
            "from_block": self.from_block,
            "to_block": self.to_block,
            "blocks_scanned": self.blocks_scanned,
            "events_fetched": self.events_fetched,
            "events_applied": self.events_applied,
            "invalid_events": self.invalid_events,
            "failures": self.failures,
        }


class SyncLoop:
    """Single-stepped state machine: IDLE -> COMPUTE_RANGE -> SCAN_BLOCK -> ADVANCE_CURSOR."""

    def __init__(
        self,
        *,
        client: EventSource,
        registry: AddressRegistry,
        cursor: BlockCursor,
        scanner: BlockScanner,
        projector: OutcomeProjector,
        poll_interval: float = 10.0,
        max_blocks_per_cycle: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self.registry = registry
        self.cursor = cursor
        self.scanner = scanner
        self.projector = projector
        self.poll_interval = poll_interval
        self.max_blocks_per_cycle = max_blocks_per_cycle
        self._sleep = sleep

        self.state = SyncState.COMPUTE_RANGE
        self.addresses: list[str] = []
        self.current_block: int | None = None
        self.target_block: int | None = None
        self.summary = SyncCycleSummary()

    # ------------------------------------------------------------------
    # State machine

    def step(self) -> SyncState:
        handler = {
            SyncState.IDLE: self._idle,
            SyncState.COMPUTE_RANGE: self._compute_range,
            SyncState.SCAN_BLOCK: self._scan_block,
            SyncState.ADVANCE_CURSOR: self._advance_cursor,
        }[self.state]
        self.state = handler()
        return self.state

    def _idle(self) -> SyncState:
        self._sleep(self.poll_interval)
        return SyncState.COMPUTE_RANGE

    def _compute_range(self) -> SyncState:
        self.summary = SyncCycleSummary()
        self.current_block = None
        self.target_block = None
        try:
            self.addresses = self.registry.list_active_addresses()
            last_processed = self.cursor.read()
            latest = self._client.block_number()
        except Exception as exc:  # noqa: BLE001
            logger.exception("Sync cycle aborted while computing the block range")
            self.summary.failures.append({"stage": SyncState.COMPUTE_RANGE.value, "reason": str(exc)})
            return SyncState.IDLE

        self.summary.last_processed_block = last_processed
        self.summary.latest_block = latest
        logger.info("Last processed block: {}", last_processed)
        logger.info("Latest block: {}", latest)

        if latest <= last_processed:
            logger.info("No new blocks to process.")
            return SyncState.IDLE

        target = latest
        if self.max_blocks_per_cycle:
            target = min(latest, last_processed + self.max_blocks_per_cycle)
        self.current_block = last_processed + 1
        self.target_block = target
        self.summary.from_block = self.current_block
        self.summary.to_block = target
        logger.info(
            "Processing blocks from {} to {} across {} contracts",
            self.current_block,
            target,
            len(self.addresses),
        )
        return SyncState.SCAN_BLOCK

    def _scan_block(self) -> SyncState:
        if self.current_block is None:
            raise RuntimeError("SCAN_BLOCK entered without a block range")
        self._process_block(self.current_block, self.summary)
        return SyncState.ADVANCE_CURSOR

    def _advance_cursor(self) -> SyncState:
        if self.current_block is None or self.target_block is None:
            raise RuntimeError("ADVANCE_CURSOR entered without a block range")
        if not self.cursor.advance(self.current_block):
            self.summary.failures.append(
                {
                    "stage": SyncState.ADVANCE_CURSOR.value,
                    "block": self.current_block,
                    "reason": "cursor update failed",
                }
            )
        if self.current_block >= self.target_block:
            return SyncState.IDLE
        self.current_block += 1
        return SyncState.SCAN_BLOCK

    # ------------------------------------------------------------------
    # Block processing

    def _process_block(self, block_number: int, summary: SyncCycleSummary) -> None:
        for address in self.addresses:
            try:
                self._process_address(address, block_number, summary)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Failed to process contract {} in block {}", address, block_number)
                summary.failures.append({"block": block_number, "address": address, "reason": str(exc)})
        summary.blocks_scanned += 1

    def _process_address(self, address: str, block_number: int, summary: SyncCycleSummary) -> None:
        events = self.scanner.scan(address, block_number)
        summary.events_fetched += len(events)
        for raw_event in events:
            outcome = decode_event_outcome(raw_event)
            if outcome is None:
                logger.warning("Failed to parse {} event with data: {}", self.scanner.event_name, raw_event.data)
                summary.invalid_events += 1
                continue
            logger.info("New {} event: {}", self.scanner.event_name, outcome)
            result = self.projector.apply(outcome)
            if result.ok:
                summary.events_applied += 1
            else:
                summary.failures.append(
                    {
                        "block": block_number,
                        "address": address,
                        "event_address": outcome.event_address,
                        "reason": f"{result.failed_step} update failed",
                    }
                )

    # ------------------------------------------------------------------
    # Drivers

    def run_cycle(self) -> SyncCycleSummary:
        """Run COMPUTE_RANGE through to IDLE without sleeping."""

        if self.state == SyncState.IDLE:
            self.state = SyncState.COMPUTE_RANGE
        while self.step() != SyncState.IDLE:
            pass
        logger.info(
            "Sync cycle finished: blocks={}, events={}, applied={}, invalid={}, failures={}",
            self.summary.blocks_scanned,
            self.summary.events_fetched,
            self.summary.events_applied,
            self.summary.invalid_events,
            len(self.summary.failures),
        )
        return self.summary

    def run_forever(self, *, max_cycles: int | None = None) -> None:
        cycles = 0
        while True:
            self.run_cycle()
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                return
            self.step()

    def replay(
        self,
        from_block: int,
        to_block: int,
        *,
        addresses: Sequence[str] | None = None,
    ) -> SyncCycleSummary:
        """Re-scan ``[from_block, to_block]`` and re-apply outcomes without moving the cursor.

        Defaults to every address in ``events``, including resolved ones whose
        bet update failed after the event row was already marked inactive.
        """

        if from_block > to_block:
            raise ValueError("from_block must not exceed to_block")
        summary = SyncCycleSummary(from_block=from_block, to_block=to_block)
        if addresses:
            self.addresses = [normalize_contract_address(address) for address in addresses]
        else:
            self.addresses = self.registry.list_all_addresses()
        logger.info("Replaying blocks {} to {} across {} contracts", from_block, to_block, len(self.addresses))
        for block_number in range(from_block, to_block + 1):
            self._process_block(block_number, summary)
        return summary


def build_sync_loop(
    settings: Settings,
    *,
    session_factory,
    client: StarknetRpcClient,
    sleep: Callable[[float], None] = time.sleep,
) -> SyncLoop:
    session_scope = session_scope_factory(session_factory)
    event_key = selector_hex(settings.sync_event_name)
    logger.info("{} selector: {}", settings.sync_event_name, event_key)
    scanner = BlockScanner(
        client,
        event_key=event_key,
        event_name=settings.sync_event_name,
        chunk_size=settings.sync_events_chunk_size,
        follow_continuation=settings.sync_follow_continuation,
        max_pages=settings.sync_max_pages_per_scan,
    )
    return SyncLoop(
        client=client,
        registry=AddressRegistry(session_scope),
        cursor=BlockCursor(session_scope),
        scanner=scanner,
        projector=OutcomeProjector(session_scope),
        poll_interval=settings.sync_poll_interval_seconds,
        max_blocks_per_cycle=settings.sync_max_blocks_per_cycle,
        sleep=sleep,
    )


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Project timed-out event resolutions from Starknet into the database",
    )
    parser.add_argument("--once", action="store_true", help="Run a single sync cycle and exit")
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Override the idle time in seconds between sync cycles",
    )
    parser.add_argument(
        "--max-blocks",
        type=int,
        default=None,
        help="Scan at most N blocks per cycle",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Also create the events and bets tables (local development only)",
    )
    parser.add_argument(
        "--summary-path",
        type=Path,
        default=None,
        help="Optional path where the JSON summary of a --once run is written",
    )
    return parser.parse_args()


def _write_summary(summary: SyncCycleSummary, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary.to_dict(), default=str, indent=2))
    logger.info("Sync summary written to {}", path)


def main() -> SyncCycleSummary | None:
    args = _parse_args()
    settings = get_settings()
    configure_logging(settings.log_level)

    overrides: dict[str, Any] = {}
    if args.poll_interval is not None:
        overrides["sync_poll_interval_seconds"] = args.poll_interval
    if args.max_blocks is not None:
        overrides["sync_max_blocks_per_cycle"] = args.max_blocks
    if overrides:
        settings = settings.model_copy(update=overrides)

    engine, session_factory = build_db_components(settings)
    init_db(engine, create_projection_tables=args.create_tables)

    client = StarknetRpcClient(endpoint=settings.rpc_url, timeout=settings.rpc_timeout_seconds)
    try:
        loop = build_sync_loop(settings, session_factory=session_factory, client=client)
        if args.once:
            summary = loop.run_cycle()
            if args.summary_path:
                _write_summary(summary, args.summary_path)
            return summary
        loop.run_forever()
    finally:
        client.close()
        engine.dispose()
    return None


if __name__ == "__main__":
    main()

from __future__ import annotations

from sqlalchemy.orm import Session

from app.repositories import BetRepository, BlockStateRepository, EventRepository


def list_active_event_addresses(session: Session) -> list[str]:
    return EventRepository(session).list_active_addresses()


def list_event_addresses(session: Session) -> list[str]:
    return EventRepository(session).list_addresses()


def mark_event_resolved(session: Session, *, address: str, outcome: int) -> int:
    return EventRepository(session).mark_resolved(address, outcome)


def mark_bets_claimable(session: Session, *, event_address: str, bet_side: int) -> int:
    return BetRepository(session).mark_claimable(event_address, bet_side)


def get_last_processed_block(session: Session) -> int | None:
    return BlockStateRepository(session).get_last_processed_block()


def set_last_processed_block(session: Session, block_number: int) -> int:
    return BlockStateRepository(session).set_last_processed_block(block_number)


def ensure_block_state(session: Session) -> bool:
    return BlockStateRepository(session).ensure_initialized()

"""Event and bet projection helpers."""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.models import BetRecord, EventRecord


class EventRepository:
    """Encapsulate reads and writes against the ``events`` table."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_active_addresses(self) -> list[str]:
        query = select(EventRecord.address).where(EventRecord.is_active.is_(True))
        return list(self._session.execute(query).scalars().all())

    def list_addresses(self) -> list[str]:
        query = select(EventRecord.address).order_by(EventRecord.address)
        return list(self._session.execute(query).scalars().all())

    def mark_resolved(self, address: str, outcome: int) -> int:
        statement = (
            update(EventRecord)
            .where(EventRecord.address == address)
            .values(is_active=False, outcome=outcome)
        )
        return self._session.execute(statement).rowcount or 0


class BetRepository:
    """Encapsulate writes against the ``bets`` table."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def mark_claimable(self, event_address: str, bet_side: int) -> int:
        statement = (
            update(BetRecord)
            .where(BetRecord.event_address == event_address, BetRecord.bet == bet_side)
            .values(is_claimable=True)
        )
        return self._session.execute(statement).rowcount or 0

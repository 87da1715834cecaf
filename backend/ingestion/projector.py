from __future__ import annotations

from dataclasses import dataclass

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from app import crud
from app.domain import EventOutcome

from .service import SessionScope


@dataclass(slots=True)
class ProjectionResult:
    event_address: str
    events_updated: int = 0
    bets_updated: int = 0
    failed_step: str | None = None

    @property
    def ok(self) -> bool:
        return self.failed_step is None


class OutcomeProjector:
    """Write a decoded outcome to the ``events`` and ``bets`` tables.

    The two updates run in separate transactions. When the event update fails
    no bet is touched; when the bet update fails the event update stays
    committed and a later replay of the block repairs it.
    """

    def __init__(self, session_scope: SessionScope) -> None:
        self._session_scope = session_scope

    def apply(self, outcome: EventOutcome) -> ProjectionResult:
        result = ProjectionResult(event_address=outcome.event_address)

        try:
            with self._session_scope() as session:
                result.events_updated = crud.mark_event_resolved(
                    session, address=outcome.event_address, outcome=outcome.outcome
                )
        except SQLAlchemyError as exc:
            logger.error("Failed to update events table for {}: {}", outcome.event_address, exc)
            result.failed_step = "events"
            return result
        logger.info("Updated events table for event_address: {}", outcome.event_address)

        try:
            with self._session_scope() as session:
                result.bets_updated = crud.mark_bets_claimable(
                    session, event_address=outcome.event_address, bet_side=outcome.claim_side
                )
        except SQLAlchemyError as exc:
            logger.error("Failed to update bets table for {}: {}", outcome.event_address, exc)
            result.failed_step = "bets"
            return result
        logger.info(
            "Updated bets table for event_address: {} (side {}, {} rows)",
            outcome.event_address,
            outcome.claim_side,
            result.bets_updated,
        )
        return result

from __future__ import annotations

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from app import crud

from .service import SessionScope


class BlockCursor:
    """Persisted watermark of the highest block scanned for every tracked address."""

    def __init__(self, session_scope: SessionScope) -> None:
        self._session_scope = session_scope

    def ensure_initialized(self) -> None:
        with self._session_scope() as session:
            crud.ensure_block_state(session)

    def read(self) -> int:
        with self._session_scope() as session:
            value = crud.get_last_processed_block(session)
            if value is None:
                logger.warning("Block state row missing; re-seeding cursor at block 0")
                crud.ensure_block_state(session)
                return 0
        return value

    def advance(self, block_number: int) -> bool:
        """Persist ``block_number``; on storage errors keep the old value and return False."""

        try:
            with self._session_scope() as session:
                updated = crud.set_last_processed_block(session, block_number)
        except SQLAlchemyError as exc:
            logger.error("Failed to update last_processed_block to {}: {}", block_number, exc)
            return False
        if not updated:
            logger.error("Block state row missing; last_processed_block not set to {}", block_number)
            return False
        return True

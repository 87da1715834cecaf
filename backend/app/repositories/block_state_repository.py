"""Persistence helpers for the block cursor row."""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.models import CURSOR_ROW_ID, BlockStateTrunk


class BlockStateRepository:
    """Read and write the single ``block_state_trunks`` row."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def ensure_initialized(self) -> bool:
        """Insert the cursor row at block 0 when absent; return whether it was created."""

        if self._session.get(BlockStateTrunk, CURSOR_ROW_ID) is not None:
            return False
        self._session.add(BlockStateTrunk(id=CURSOR_ROW_ID, last_processed_block=0))
        self._session.flush()
        return True

    def get_last_processed_block(self) -> int | None:
        query = select(BlockStateTrunk.last_processed_block).where(
            BlockStateTrunk.id == CURSOR_ROW_ID
        )
        value = self._session.execute(query).scalar_one_or_none()
        return int(value) if value is not None else None

    def set_last_processed_block(self, block_number: int) -> int:
        statement = (
            update(BlockStateTrunk)
            .where(BlockStateTrunk.id == CURSOR_ROW_ID)
            .values(last_processed_block=block_number)
        )
        result = self._session.execute(statement)
        return result.rowcount or 0

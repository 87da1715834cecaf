from __future__ import annotations

from sqlalchemy import BigInteger, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base

CURSOR_ROW_ID = 1


class BlockStateTrunk(Base):
    __tablename__ = "block_state_trunks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    last_processed_block: Mapped[int] = mapped_column(BigInteger, nullable=False)


class EventRecord(Base):
    __tablename__ = "events"

    address: Mapped[str] = mapped_column(String(66), primary_key=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    outcome: Mapped[int | None] = mapped_column(Integer, nullable=True)


class BetRecord(Base):
    __tablename__ = "bets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_address: Mapped[str] = mapped_column(String(66), nullable=False, index=True)
    bet: Mapped[int] = mapped_column(Integer, nullable=False)
    is_claimable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

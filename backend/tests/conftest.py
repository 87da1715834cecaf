from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.db import create_db_engine, create_session_factory, init_db
from app.models import BetRecord, EventRecord
from ingestion.service import session_scope_factory

EVENT_ADDRESS = "0x" + "0" * 60 + "abcd"


@pytest.fixture
def test_settings(tmp_path, monkeypatch) -> Settings:
    settings = Settings(
        _env_file=None,
        rpc_endpoint="http://starknet.test/rpc",
        database_url=f"sqlite:///{tmp_path / 'sync.db'}",
        sync_poll_interval_seconds=0,
    )
    monkeypatch.setattr("app.core.config.get_settings", lambda: settings)
    return settings


@pytest.fixture
def engine(test_settings):
    engine = create_db_engine(test_settings.database_url)
    init_db(engine, create_projection_tables=True)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def session_scope(session_factory):
    return session_scope_factory(session_factory)


@pytest.fixture
def seed_event(session_factory):
    """Insert an active event with one bet on each side."""

    def _seed(address: str = EVENT_ADDRESS, *, bets: tuple[int, ...] = (0, 1)) -> str:
        with session_factory() as session:
            session.add(EventRecord(address=address, is_active=True, outcome=None))
            for side in bets:
                session.add(BetRecord(event_address=address, bet=side, is_claimable=False))
            session.commit()
        return address

    return _seed


def read_event(session: Session, address: str) -> EventRecord:
    record = session.get(EventRecord, address)
    assert record is not None
    return record


def claimable_by_side(session: Session, address: str) -> dict[int, bool]:
    bets = session.query(BetRecord).filter(BetRecord.event_address == address).all()
    return {bet.bet: bet.is_claimable for bet in bets}

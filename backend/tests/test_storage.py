from __future__ import annotations

import pytest
from sqlalchemy import delete
from sqlalchemy.exc import OperationalError

from app.db import init_db
from app.models import BlockStateTrunk, EventRecord
from app.repositories import BlockStateRepository, EventRepository
from ingestion.cursor import BlockCursor
from ingestion.registry import AddressRegistry, AddressRegistryError


def test_init_db_seeds_cursor_once(engine, session_factory):
    init_db(engine)
    init_db(engine)

    with session_factory() as session:
        rows = session.query(BlockStateTrunk).all()
    assert [(row.id, row.last_processed_block) for row in rows] == [(1, 0)]


def test_init_db_keeps_existing_cursor(engine, session_scope):
    cursor = BlockCursor(session_scope)
    assert cursor.advance(77)

    init_db(engine)

    assert cursor.read() == 77


def test_cursor_read_and_advance(session_scope):
    cursor = BlockCursor(session_scope)

    assert cursor.read() == 0
    assert cursor.advance(5) is True
    assert cursor.read() == 5


def test_cursor_reseeds_missing_row(session_scope, session_factory):
    with session_factory() as session:
        session.execute(delete(BlockStateTrunk))
        session.commit()

    cursor = BlockCursor(session_scope)

    assert cursor.read() == 0
    with session_factory() as session:
        assert BlockStateRepository(session).get_last_processed_block() == 0


def test_cursor_advance_failure_is_logged_and_non_fatal(session_scope, monkeypatch):
    cursor = BlockCursor(session_scope)
    cursor.advance(3)

    def _boom(session, block_number):
        raise OperationalError("UPDATE block_state_trunks", {}, Exception("database is locked"))

    monkeypatch.setattr("app.crud.set_last_processed_block", _boom)

    assert cursor.advance(4) is False
    monkeypatch.undo()
    assert cursor.read() == 3


def test_registry_lists_only_active_addresses(session_factory, session_scope):
    with session_factory() as session:
        session.add_all(
            [
                EventRecord(address="0x" + "0" * 63 + "1", is_active=True),
                EventRecord(address="0x2", is_active=True),
                EventRecord(address="0x" + "0" * 63 + "3", is_active=False),
            ]
        )
        session.commit()

    addresses = AddressRegistry(session_scope).list_active_addresses()

    assert sorted(addresses) == ["0x" + "0" * 63 + "1", "0x" + "0" * 63 + "2"]


def test_registry_normalizes_uppercase_addresses(session_factory, session_scope):
    with session_factory() as session:
        session.add(EventRecord(address="0xABC", is_active=True))
        session.commit()

    assert AddressRegistry(session_scope).list_active_addresses() == ["0x" + "0" * 61 + "abc"]


def test_registry_rejects_unparseable_address(session_factory, session_scope):
    with session_factory() as session:
        session.add(EventRecord(address="0xnothex", is_active=True))
        session.commit()

    with pytest.raises(AddressRegistryError):
        AddressRegistry(session_scope).list_active_addresses()


def test_event_repository_mark_resolved_reports_rowcount(session_factory, seed_event):
    address = seed_event()

    with session_factory() as session:
        repo = EventRepository(session)
        assert repo.mark_resolved(address, 2) == 1
        assert repo.mark_resolved("0x" + "f" * 64, 2) == 0
        session.commit()
        assert repo.list_active_addresses() == []


def test_cursor_advance_reports_missing_row(session_scope, session_factory):
    with session_factory() as session:
        session.execute(delete(BlockStateTrunk))
        session.commit()

    assert BlockCursor(session_scope).advance(9) is False
    with session_factory() as session:
        assert session.query(BlockStateTrunk).count() == 0


def test_registry_lists_all_addresses_including_resolved(session_factory, session_scope):
    with session_factory() as session:
        session.add_all(
            [
                EventRecord(address="0x1", is_active=True),
                EventRecord(address="0x2", is_active=False),
            ]
        )
        session.commit()

    registry = AddressRegistry(session_scope)

    assert registry.list_all_addresses() == ["0x" + "0" * 63 + "1", "0x" + "0" * 63 + "2"]
    assert registry.list_active_addresses() == ["0x" + "0" * 63 + "1"]

from __future__ import annotations

from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from app.domain import EventOutcome
from conftest import EVENT_ADDRESS, claimable_by_side, read_event
from ingestion.projector import OutcomeProjector


def _outcome(code: int, address: str = EVENT_ADDRESS) -> EventOutcome:
    return EventOutcome(event_address=address, outcome=code, timestamp=1_700_000_000)


def test_outcome_one_resolves_event_and_marks_side_one(session_scope, session_factory, seed_event):
    seed_event()

    result = OutcomeProjector(session_scope).apply(_outcome(1))

    assert result.ok
    assert (result.events_updated, result.bets_updated) == (1, 1)
    with session_factory() as session:
        event = read_event(session, EVENT_ADDRESS)
        assert event.is_active is False
        assert event.outcome == 1
        assert claimable_by_side(session, EVENT_ADDRESS) == {0: False, 1: True}


def test_other_outcome_marks_side_zero(session_scope, session_factory, seed_event):
    seed_event()

    OutcomeProjector(session_scope).apply(_outcome(2))

    with session_factory() as session:
        assert read_event(session, EVENT_ADDRESS).outcome == 2
        assert claimable_by_side(session, EVENT_ADDRESS) == {0: True, 1: False}


def test_reapplying_an_outcome_changes_nothing(session_scope, session_factory, seed_event):
    seed_event()
    projector = OutcomeProjector(session_scope)

    projector.apply(_outcome(1))
    with session_factory() as session:
        before = (read_event(session, EVENT_ADDRESS).outcome, claimable_by_side(session, EVENT_ADDRESS))

    second = projector.apply(_outcome(1))

    assert second.ok
    with session_factory() as session:
        after = (read_event(session, EVENT_ADDRESS).outcome, claimable_by_side(session, EVENT_ADDRESS))
    assert before == after


def test_event_update_failure_skips_bet_update(session_scope):
    error = OperationalError("UPDATE events", {}, Exception("connection reset"))
    with patch("app.crud.mark_event_resolved", side_effect=error), patch(
        "app.crud.mark_bets_claimable"
    ) as mark_bets:
        result = OutcomeProjector(session_scope).apply(_outcome(1))

    assert result.failed_step == "events"
    assert not result.ok
    mark_bets.assert_not_called()


def test_bet_update_failure_keeps_event_resolution(session_scope, session_factory, seed_event):
    seed_event()
    error = OperationalError("UPDATE bets", {}, Exception("connection reset"))

    with patch("app.crud.mark_bets_claimable", side_effect=error):
        result = OutcomeProjector(session_scope).apply(_outcome(1))

    assert result.failed_step == "bets"
    assert result.events_updated == 1
    with session_factory() as session:
        assert read_event(session, EVENT_ADDRESS).is_active is False
        assert claimable_by_side(session, EVENT_ADDRESS) == {0: False, 1: False}


def test_unknown_event_address_is_a_no_op(session_scope):
    result = OutcomeProjector(session_scope).apply(_outcome(1, address="0x" + "e" * 64))

    assert result.ok
    assert (result.events_updated, result.bets_updated) == (0, 0)

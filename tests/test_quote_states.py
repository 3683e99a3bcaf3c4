"""Tests for the quote transition table and the QuoteLifecycle validator."""

from __future__ import annotations

import uuid

import pytest

from scrapquote.errors import InvalidState
from scrapquote.models.enums import ClientDecision, QuoteKind, QuoteState, QuoteStatus
from scrapquote.quotes.lifecycle import QuoteLifecycle
from scrapquote.quotes.states import (
    ACCEPTED_STATES,
    DECISION_FOR_STATE,
    PENDING_STATES,
    STATUS_FOR_STATE,
    TRANSITIONS,
    accepted_status,
    state_columns,
)


@pytest.fixture()
def make_lifecycle():
    """Factory to create a lifecycle at a given state."""
    def _make(state: QuoteState) -> QuoteLifecycle:
        return QuoteLifecycle(quote_id=uuid.uuid4(), current_state=state)
    return _make


class TestTransitionTable:
    def test_every_state_has_an_entry(self):
        assert set(TRANSITIONS) == set(QuoteState)
        assert set(DECISION_FOR_STATE) == set(QuoteState)
        assert set(STATUS_FOR_STATE) == set(QuoteState)

    def test_targets_are_known_states(self):
        for triggers in TRANSITIONS.values():
            for target in triggers.values():
                assert target in QuoteState

    def test_accepted_states_only_collect(self):
        assert TRANSITIONS[QuoteState.ACCEPTED] == {"collect": QuoteState.COLLECTED}
        assert TRANSITIONS[QuoteState.COLLECTED] == {}

    def test_pending_states(self):
        assert PENDING_STATES == {
            QuoteState.AUTO_PRICED,
            QuoteState.MANUAL_REQUESTED,
            QuoteState.MANUAL_REVIEWED,
        }
        assert ACCEPTED_STATES.isdisjoint(PENDING_STATES)

    def test_state_columns(self):
        assert state_columns(QuoteState.REJECTED) == {
            "state": "rejected",
            "client_decision": ClientDecision.REJECTED.value,
        }
        assert state_columns(QuoteState.COLLECTED)["client_decision"] == "accepted"

    def test_accepted_status_is_kind_prefixed(self):
        assert accepted_status(QuoteKind.AUTO, QuoteState.COLLECTED) == QuoteStatus.AUTO_ACCEPTED_COLLECTED
        assert (
            accepted_status(QuoteKind.MANUAL, QuoteState.ACCEPTED)
            == QuoteStatus.MANUAL_ACCEPTED_PENDING_COLLECTION
        )


class TestQuoteLifecycle:
    def test_manual_review_cycle(self, make_lifecycle):
        lifecycle = make_lifecycle(QuoteState.AUTO_PRICED)
        assert lifecycle.next_state("request_manual") == QuoteState.MANUAL_REQUESTED

        lifecycle = make_lifecycle(QuoteState.MANUAL_REQUESTED)
        assert lifecycle.next_state("review") == QuoteState.MANUAL_REVIEWED

        lifecycle = make_lifecycle(QuoteState.MANUAL_REVIEWED)
        assert lifecycle.next_state("reject") == QuoteState.REJECTED

        lifecycle = make_lifecycle(QuoteState.REJECTED)
        assert lifecycle.next_state("request_manual") == QuoteState.MANUAL_REQUESTED

    @pytest.mark.parametrize(
        "state",
        [QuoteState.AUTO_PRICED, QuoteState.MANUAL_REQUESTED, QuoteState.MANUAL_REVIEWED],
    )
    def test_accept_from_pending_states(self, make_lifecycle, state):
        assert make_lifecycle(state).next_state("accept") == QuoteState.ACCEPTED

    @pytest.mark.parametrize(
        ("state", "trigger"),
        [
            (QuoteState.AUTO_PRICED, "reject"),
            (QuoteState.AUTO_PRICED, "review"),
            (QuoteState.MANUAL_REQUESTED, "reject"),
            (QuoteState.MANUAL_REVIEWED, "review"),
            (QuoteState.REJECTED, "accept"),
            (QuoteState.ACCEPTED, "request_manual"),
            (QuoteState.ACCEPTED, "accept"),
            (QuoteState.COLLECTED, "collect"),
        ],
    )
    def test_invalid_trigger_reports_current_status(self, make_lifecycle, state, trigger):
        lifecycle = make_lifecycle(state)

        assert not lifecycle.can_transition(trigger)
        with pytest.raises(InvalidState) as exc_info:
            lifecycle.next_state(trigger)

        assert exc_info.value.status == STATUS_FOR_STATE[state].value
        assert lifecycle.current_state == state

    def test_valid_triggers(self, make_lifecycle):
        assert sorted(make_lifecycle(QuoteState.MANUAL_REVIEWED).get_valid_triggers()) == ["accept", "reject"]

    def test_terminal(self, make_lifecycle):
        assert make_lifecycle(QuoteState.COLLECTED).is_terminal
        assert not make_lifecycle(QuoteState.REJECTED).is_terminal

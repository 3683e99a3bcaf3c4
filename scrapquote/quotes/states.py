"""Quote lifecycle state definitions and transition map.

A quote moves through a strict state machine. Handlers never flip the
boolean/enum columns on their own — they pick a trigger and the transition
map decides the next state; the implied column values come from here too.
"""

from __future__ import annotations

from scrapquote.models.enums import ClientDecision, QuoteKind, QuoteState, QuoteStatus

# Transition map: {current_state: {trigger_name: next_state}}
TRANSITIONS: dict[QuoteState, dict[str, QuoteState]] = {
    QuoteState.AUTO_PRICED: {
        "request_manual": QuoteState.MANUAL_REQUESTED,
        "accept": QuoteState.ACCEPTED,
    },
    QuoteState.MANUAL_REQUESTED: {
        "review": QuoteState.MANUAL_REVIEWED,
        "accept": QuoteState.ACCEPTED,  # only with an estimated price, see engine
    },
    QuoteState.MANUAL_REVIEWED: {
        "accept": QuoteState.ACCEPTED,
        "reject": QuoteState.REJECTED,
    },
    QuoteState.REJECTED: {
        "request_manual": QuoteState.MANUAL_REQUESTED,  # resurrection, same record
    },
    QuoteState.ACCEPTED: {
        "collect": QuoteState.COLLECTED,
    },
    QuoteState.COLLECTED: {},
}

# Client decision implied by each state
DECISION_FOR_STATE: dict[QuoteState, ClientDecision] = {
    QuoteState.AUTO_PRICED: ClientDecision.PENDING,
    QuoteState.MANUAL_REQUESTED: ClientDecision.PENDING,
    QuoteState.MANUAL_REVIEWED: ClientDecision.PENDING,
    QuoteState.REJECTED: ClientDecision.REJECTED,
    QuoteState.ACCEPTED: ClientDecision.ACCEPTED,
    QuoteState.COLLECTED: ClientDecision.ACCEPTED,
}

ACCEPTED_STATES: set[QuoteState] = {QuoteState.ACCEPTED, QuoteState.COLLECTED}

# States in which the client still owes a decision
PENDING_STATES: set[QuoteState] = {
    s for s, decision in DECISION_FOR_STATE.items() if decision == ClientDecision.PENDING
}

# What a caller sees when it runs into a quote in a given state
STATUS_FOR_STATE: dict[QuoteState, QuoteStatus] = {
    QuoteState.AUTO_PRICED: QuoteStatus.CACHED_QUOTE,
    QuoteState.MANUAL_REQUESTED: QuoteStatus.MANUAL_PENDING_REVIEW,
    QuoteState.MANUAL_REVIEWED: QuoteStatus.MANUAL_REVIEWED,
    QuoteState.REJECTED: QuoteStatus.MANUAL_PREVIOUSLY_REJECTED,
    QuoteState.ACCEPTED: QuoteStatus.ACCEPTED_PENDING_COLLECTION,
    QuoteState.COLLECTED: QuoteStatus.ACCEPTED_COLLECTED,
}

# submitManualQuote reports acceptance per kind lineage
_ACCEPTED_STATUS_BY_KIND: dict[tuple[QuoteKind, QuoteState], QuoteStatus] = {
    (QuoteKind.AUTO, QuoteState.ACCEPTED): QuoteStatus.AUTO_ACCEPTED_PENDING_COLLECTION,
    (QuoteKind.AUTO, QuoteState.COLLECTED): QuoteStatus.AUTO_ACCEPTED_COLLECTED,
    (QuoteKind.MANUAL, QuoteState.ACCEPTED): QuoteStatus.MANUAL_ACCEPTED_PENDING_COLLECTION,
    (QuoteKind.MANUAL, QuoteState.COLLECTED): QuoteStatus.MANUAL_ACCEPTED_COLLECTED,
}


def status_for_state(state: QuoteState) -> QuoteStatus:
    """Client-facing status for a quote currently in `state`."""
    return STATUS_FOR_STATE[state]


def accepted_status(kind: QuoteKind, state: QuoteState) -> QuoteStatus:
    """Kind-prefixed acceptance status (e.g. manual_accepted_collected)."""
    return _ACCEPTED_STATUS_BY_KIND[(kind, state)]


def state_columns(state: QuoteState) -> dict[str, object]:
    """Column values implied by `state`, written alongside it on every transition."""
    return {
        "state": state.value,
        "client_decision": DECISION_FOR_STATE[state].value,
    }

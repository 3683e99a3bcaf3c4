"""Finite state machine guarding quote transitions.

The FSM validates triggers against the transition map. It never writes:
the engine persists the target state with a conditional update keyed on
the state the FSM was built from.
"""

from __future__ import annotations

import logging
import uuid

from scrapquote.errors import InvalidState
from scrapquote.models.enums import QuoteState
from scrapquote.models.quote import Quote
from scrapquote.quotes.states import TRANSITIONS, status_for_state

logger = logging.getLogger(__name__)


class QuoteLifecycle:
    """Transition validator for a single quote record."""

    def __init__(self, quote_id: uuid.UUID | None, current_state: QuoteState) -> None:
        self.quote_id = quote_id
        self.current_state = current_state

    @classmethod
    def for_quote(cls, quote: Quote) -> QuoteLifecycle:
        return cls(quote.id, QuoteState(quote.state))

    def can_transition(self, trigger: str) -> bool:
        """Check if a trigger is valid from the current state."""
        return trigger in TRANSITIONS.get(self.current_state, {})

    def get_valid_triggers(self) -> list[str]:
        """Return all valid trigger names for the current state."""
        return list(TRANSITIONS.get(self.current_state, {}).keys())

    def next_state(self, trigger: str, quote: Quote | None = None) -> QuoteState:
        """Resolve the target state for `trigger`.

        Raises:
            InvalidState: If the trigger is not valid from the current state.
                The error status is the quote's current status.
        """
        state_transitions = TRANSITIONS.get(self.current_state, {})
        if trigger not in state_transitions:
            logger.debug(
                "Rejected transition: %s --%s--> ??? (quote=%s, valid=%s)",
                self.current_state.value,
                trigger,
                self.quote_id,
                list(state_transitions.keys()),
            )
            raise InvalidState(
                f"Cannot {trigger.replace('_', ' ')} a quote in state {self.current_state.value}",
                status=status_for_state(self.current_state).value,
                quote=quote,
            )
        return state_transitions[trigger]

    @property
    def is_terminal(self) -> bool:
        """Check if the current state is a terminal state."""
        return len(TRANSITIONS.get(self.current_state, {})) == 0

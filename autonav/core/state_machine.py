"""Minimal cooperative state machine.

One state is active per context. ``Context.transition_to`` activates a state
and calls its ``enter``; ``Context.execute`` runs the active state's
``execute`` once per tick. States keep an explicit reference to the context
that owns them.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


class State(ABC):
    """Base class for all context states."""

    #: Display name; defaults to the class name
    name: Optional[str] = None

    def __init__(self, context):
        self.context = context

    @property
    def state_name(self) -> str:
        return self.name or type(self).__name__

    @abstractmethod
    def enter(self):
        """Called once when the state becomes active."""

    @abstractmethod
    def execute(self):
        """Called once per tick while the state is active."""

    def __repr__(self):
        return f"<{self.state_name}>"


class Context:
    """Owner of the active state."""

    def __init__(self):
        self.current_state: Optional[State] = None

    def transition_to(self, state: Optional[State]):
        """Activate ``state`` (or clear the machine when None) and enter it."""
        previous = self.current_state
        self.current_state = state
        if state is not None:
            logger.debug("%s: %s -> %s", type(self).__name__, previous, state)
            self.on_transition(previous, state)
            state.enter()

    def on_transition(self, previous: Optional[State], state: State):
        """Hook run before ``state.enter``; subclasses log or publish here."""

    def execute(self):
        if self.current_state is not None:
            self.current_state.execute()

    def is_in(self, *state_types) -> bool:
        return isinstance(self.current_state, state_types)

    @property
    def state_name(self) -> Optional[str]:
        return self.current_state.state_name if self.current_state else None

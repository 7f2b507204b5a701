"""Session state — volatile per-identity conversation mode."""
from __future__ import annotations

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    NONE = "none"
    INTRO_SENT = "intro_sent"
    CHAT_WITH_OWNER = "chat_with_owner"
    CHAT_WITH_ASSISTANT = "chat_with_assistant"


# Menu choice -> target state
MENU_CHOICES = {
    "1": SessionState.CHAT_WITH_OWNER,
    "2": SessionState.CHAT_WITH_ASSISTANT,
}


class SessionStore:
    """In-memory map of identity -> SessionState.

    Empty on every boot: an identity with no entry is NONE.  All methods are
    synchronous so a read and the following write can never be split by an
    await.
    """

    def __init__(self) -> None:
        self._states: dict[str, SessionState] = {}

    def get(self, identity: str) -> SessionState:
        return self._states.get(identity, SessionState.NONE)

    def set(self, identity: str, state: SessionState) -> None:
        if state is SessionState.NONE:
            self._states.pop(identity, None)
        else:
            self._states[identity] = state
        logger.debug("Session %s -> %s", identity, state.value)

    def transition(self, identity: str, expected: SessionState, new: SessionState) -> bool:
        """Move to ``new`` only if the current state is ``expected``."""
        if self.get(identity) is not expected:
            return False
        self.set(identity, new)
        return True

    def reset(self, identity: str | None = None) -> None:
        """Forget one identity, or everyone when ``identity`` is None."""
        if identity is None:
            self._states.clear()
        else:
            self._states.pop(identity, None)

    def __len__(self) -> int:
        return len(self._states)

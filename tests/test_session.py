"""Tests for pampam.assistant.session."""
from __future__ import annotations

from pampam.assistant.session import MENU_CHOICES, SessionState, SessionStore


class TestSessionStore:

    def test_unknown_identity_is_none(self):
        assert SessionStore().get("628111") is SessionState.NONE

    def test_set_and_get(self):
        sessions = SessionStore()
        sessions.set("628111", SessionState.INTRO_SENT)
        assert sessions.get("628111") is SessionState.INTRO_SENT
        assert sessions.get("628222") is SessionState.NONE

    def test_transition_requires_expected_state(self):
        sessions = SessionStore()
        assert not sessions.transition("628111", SessionState.INTRO_SENT, SessionState.CHAT_WITH_OWNER)
        assert sessions.get("628111") is SessionState.NONE

        sessions.set("628111", SessionState.INTRO_SENT)
        assert sessions.transition("628111", SessionState.INTRO_SENT, SessionState.CHAT_WITH_OWNER)
        assert sessions.get("628111") is SessionState.CHAT_WITH_OWNER

    def test_exactly_one_state(self):
        sessions = SessionStore()
        sessions.set("628111", SessionState.CHAT_WITH_OWNER)
        sessions.set("628111", SessionState.CHAT_WITH_ASSISTANT)
        assert sessions.get("628111") is SessionState.CHAT_WITH_ASSISTANT
        assert len(sessions) == 1

    def test_reset(self):
        sessions = SessionStore()
        sessions.set("a", SessionState.INTRO_SENT)
        sessions.set("b", SessionState.INTRO_SENT)
        sessions.reset("a")
        assert sessions.get("a") is SessionState.NONE
        assert sessions.get("b") is SessionState.INTRO_SENT
        sessions.reset()
        assert len(sessions) == 0

    def test_menu_choices(self):
        assert MENU_CHOICES["1"] is SessionState.CHAT_WITH_OWNER
        assert MENU_CHOICES["2"] is SessionState.CHAT_WITH_ASSISTANT

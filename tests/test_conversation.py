"""Tests for the conversation engine."""

import pytest

from interviewer.conversation import OPENING_INSTRUCTION, SYSTEM_PROMPT, ConversationEngine
from interviewer.models import Speaker


class TestChat:

    def test_history_grows_by_two_per_call_in_order(self, chat):
        engine = ConversationEngine(chat)
        answers = ["I am Alice.", "I like Python.", "Because of the team."]
        replies = [engine.chat("s1", a) for a in answers]

        history = engine.get_history("s1")
        assert len(history) == 2 * len(answers)
        assert [t.speaker for t in history] == [Speaker.USER, Speaker.ASSISTANT] * 3
        assert [t.text for t in history[0::2]] == answers
        assert [t.text for t in history[1::2]] == replies

    def test_full_history_and_persona_sent(self, chat):
        engine = ConversationEngine(chat, max_tokens=123)
        engine.chat("s1", "first")
        engine.chat("s1", "second")

        system_prompt, turns, max_tokens = chat.calls[-1]
        assert system_prompt == SYSTEM_PROMPT
        assert max_tokens == 123
        assert [t.text for t in turns] == ["first", "Question 1?", "second"]

    def test_persona_rules(self):
        assert "one question" in SYSTEM_PROMPT
        assert "1-2 sentences" in SYSTEM_PROMPT
        assert "multi-part" in SYSTEM_PROMPT

    def test_sessions_are_independent(self, chat):
        engine = ConversationEngine(chat)
        engine.chat("a", "hello from a")
        engine.chat("b", "hello from b")
        assert [t.text for t in engine.get_history("a")][0] == "hello from a"
        assert len(engine.get_history("b")) == 2

    def test_provider_error_propagates(self, chat):
        chat.error = TimeoutError("provider down")
        engine = ConversationEngine(chat)
        with pytest.raises(TimeoutError, match="provider down"):
            engine.chat("s1", "hello")
        # The user turn was recorded before the call failed.
        assert [t.text for t in engine.get_history("s1")] == ["hello"]


class TestStartInterview:

    def test_opening_sent_alone_and_recorded(self, chat):
        chat.replies = ["Please introduce yourself."]
        engine = ConversationEngine(chat)

        reply = engine.start_interview("s1")

        assert reply == "Please introduce yourself."
        _, turns, _ = chat.calls[0]
        assert [t.text for t in turns] == [OPENING_INSTRUCTION]
        history = engine.get_history("s1")
        assert [(t.speaker, t.text) for t in history] == [
            (Speaker.USER, OPENING_INSTRUCTION),
            (Speaker.ASSISTANT, "Please introduce yourself."),
        ]

    def test_failed_opening_records_nothing(self, chat):
        chat.error = RuntimeError("nope")
        engine = ConversationEngine(chat)
        with pytest.raises(RuntimeError):
            engine.start_interview("s1")
        assert engine.get_history("s1") == []


class TestHistoryAccess:

    def test_missing_history_is_empty(self, chat):
        assert ConversationEngine(chat).get_history("nobody") == []

    def test_get_history_returns_copy(self, chat):
        engine = ConversationEngine(chat)
        engine.chat("s1", "hi")
        engine.get_history("s1").clear()
        assert len(engine.get_history("s1")) == 2

    def test_clear_history(self, chat):
        engine = ConversationEngine(chat)
        engine.chat("s1", "hi")
        engine.clear_history("s1")
        assert engine.get_history("s1") == []
        assert "s1" not in engine
        engine.clear_history("s1")  # idempotent

    def test_late_reply_after_clear_does_not_resurrect(self, chat):
        engine = ConversationEngine(chat)

        def clear_then_reply(system_prompt, turns, max_tokens=500):
            engine.clear_history("s1")
            return "late question"

        chat.complete = clear_then_reply
        assert engine.chat("s1", "hi") == "late question"
        assert engine.get_history("s1") == []

"""Tests for the dual-provider chat client."""

from types import SimpleNamespace

import pytest

from interviewer.compute import ComputeClient, ComputeUnavailableError
from interviewer.config import Settings
from interviewer.models import Speaker, Turn

TURNS = [
    Turn(speaker=Speaker.USER, text="Please begin the interview."),
    Turn(speaker=Speaker.ASSISTANT, text="Tell me about yourself."),
    Turn(speaker=Speaker.USER, text="I build APIs."),
]


class _FakeAnthropicMessages:
    def __init__(self, reply="What APIs?", error=None):
        self.reply = reply
        self.error = error
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=self.reply)])


class _FakeOpenAICompletions:
    def __init__(self, reply="What APIs?"):
        self.reply = reply
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _anthropic_client(messages):
    client = ComputeClient(Settings(_env_file=None, anthropic_api_key="ak-test"))
    client._anthropic_client = SimpleNamespace(messages=messages)
    return client


def test_unavailable_without_key(settings):
    client = ComputeClient(settings)
    assert not client.available
    with pytest.raises(ComputeUnavailableError):
        client.complete("system", TURNS)


def test_anthropic_sends_system_and_full_history():
    messages = _FakeAnthropicMessages()
    client = _anthropic_client(messages)

    assert client.complete("be an interviewer", TURNS, max_tokens=321) == "What APIs?"
    assert messages.kwargs["system"] == "be an interviewer"
    assert messages.kwargs["max_tokens"] == 321
    assert messages.kwargs["model"] == "claude-3-haiku-20240307"
    assert messages.kwargs["messages"] == [
        {"role": "user", "content": "Please begin the interview."},
        {"role": "assistant", "content": "Tell me about yourself."},
        {"role": "user", "content": "I build APIs."},
    ]


def test_anthropic_omits_system_when_none():
    messages = _FakeAnthropicMessages()
    client = _anthropic_client(messages)
    client.complete(None, TURNS[:1])
    assert "system" not in messages.kwargs


def test_anthropic_non_text_block_yields_empty_string():
    messages = _FakeAnthropicMessages()
    messages.create = lambda **kw: SimpleNamespace(
        content=[SimpleNamespace(type="tool_use")]
    )
    assert _anthropic_client(messages).complete("s", TURNS) == ""


def test_provider_error_propagates_unmodified():
    boom = ConnectionError("rate limited")
    client = _anthropic_client(_FakeAnthropicMessages(error=boom))
    with pytest.raises(ConnectionError) as info:
        client.complete("s", TURNS)
    assert info.value is boom


def test_openai_prepends_system_message():
    completions = _FakeOpenAICompletions()
    client = ComputeClient(
        Settings(_env_file=None, llm_provider="openai", openai_api_key="sk-test")
    )
    client._openai_client = SimpleNamespace(chat=SimpleNamespace(completions=completions))

    assert client.complete("persona", TURNS[:1]) == "What APIs?"
    assert completions.kwargs["model"] == "gpt-4o-mini"
    assert completions.kwargs["messages"][0] == {"role": "system", "content": "persona"}
    assert completions.kwargs["messages"][1]["content"] == "Please begin the interview."

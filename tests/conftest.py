"""Shared fakes standing in for the chat, transcription and TTS providers."""

from __future__ import annotations

import threading
from typing import Optional

import pytest

from interviewer.config import Settings
from interviewer.conversation import ConversationEngine
from interviewer.evaluation import EvaluationEngine
from interviewer.gateway import InterviewGateway

GOOD_EVALUATION = """\
Here is my assessment of the candidate.

{
  "scores": {
    "communication": 8,
    "technical": 7,
    "motivation": 9,
    "problemSolving": 6,
    "overall": 7.5
  },
  "comments": {
    "strengths": ["Clear career vision", "Concrete examples"],
    "improvements": ["Shallow technical depth"],
    "summary": "Strong communicator with real enthusiasm."
  }
}

Let me know if you need anything else."""


class FakeChat:
    """Records every call; replies from a queue or with numbered questions."""

    def __init__(self, replies=None, error: Optional[Exception] = None) -> None:
        self.replies = list(replies or [])
        self.error = error
        self.calls: list[tuple] = []
        self.gate: Optional[threading.Event] = None

    def complete(self, system_prompt, turns, max_tokens=500):
        self.calls.append((system_prompt, list(turns), max_tokens))
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        if self.replies:
            return self.replies.pop(0)
        return f"Question {len(self.calls)}?"


class FakeTranscriber:
    def __init__(self, text: str = "I have five years of Python experience.",
                 error: Optional[Exception] = None) -> None:
        self.text = text
        self.error = error
        self.received: list[tuple[bytes, Optional[str]]] = []
        self.gate: Optional[threading.Event] = None

    def transcribe(self, audio, language=None):
        self.received.append((audio, language))
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return self.text


class FakeSynthesizer:
    def __init__(self, audio: bytes = b"ID3\x00fake-mp3\xff\x00",
                 error: Optional[Exception] = None) -> None:
        self.audio = audio
        self.error = error
        self.texts: list[str] = []

    @property
    def available(self) -> bool:
        return True

    def synthesize(self, text):
        self.texts.append(text)
        if self.error is not None:
            raise self.error
        return self.audio


@pytest.fixture
def settings(monkeypatch):
    for var in ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "ELEVENLABS_API_KEY",
                "INTERVIEWER_LLM_PROVIDER", "INTERVIEWER_TTS_PROVIDER"):
        monkeypatch.delenv(var, raising=False)
    return Settings(_env_file=None)


@pytest.fixture
def chat():
    return FakeChat()


@pytest.fixture
def grader():
    return FakeChat(replies=[GOOD_EVALUATION] * 5)


@pytest.fixture
def transcriber():
    return FakeTranscriber()


@pytest.fixture
def synthesizer():
    return FakeSynthesizer()


@pytest.fixture
def gateway(chat, grader, transcriber, synthesizer):
    return InterviewGateway(
        conversation=ConversationEngine(chat),
        evaluation=EvaluationEngine(grader),
        transcriber=transcriber,
        synthesizer=synthesizer,
        language="en",
    )

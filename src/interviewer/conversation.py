"""Conversation engine — the interviewer persona and per-session history."""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence

from interviewer.models import Speaker, Turn

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You are a job interviewer conducting a hiring interview.

Interview rules:
- Ask exactly one question per reply.
- Keep each question concise (1-2 sentences).
- Assess the candidate's experience, skills and personality.
- Be friendly but professional.
- Never ask multi-part questions.

Bad example: "Wonderful! The initiative and problem-solving you built through \
your past experience are impressive, and ... (long monologue)"
Good example: "What was the hardest part of running your own business?"
"""

OPENING_INSTRUCTION = "Please begin the interview."


class ChatProvider(Protocol):
    """Anything that turns a system prompt plus turns into a reply."""

    def complete(
        self,
        system_prompt: Optional[str],
        turns: Sequence[Turn],
        max_tokens: int = ...,
    ) -> str:
        ...


class ConversationEngine:
    """Keeps one ordered turn list per session and asks the model for the next question.

    Parameters
    ----------
    provider : ChatProvider
        Usually a :class:`interviewer.compute.ComputeClient`.
    max_tokens : int
        Reply budget for each interviewer turn.
    """

    def __init__(self, provider: ChatProvider, max_tokens: int = 500) -> None:
        self.provider = provider
        self.max_tokens = max_tokens
        self._histories: dict[str, list[Turn]] = {}

    def chat(self, session_id: str, user_text: str) -> str:
        """Append the user turn, ask the model, append and return its reply.

        The user turn stays in the history even if the provider call fails.
        """
        history = self._histories.setdefault(session_id, [])
        history.append(Turn(speaker=Speaker.USER, text=user_text))

        reply = self.provider.complete(SYSTEM_PROMPT, list(history), self.max_tokens)

        # Appends to the list captured above; if the session was cleared in
        # the meantime the reply lands in the orphaned list.
        history.append(Turn(speaker=Speaker.ASSISTANT, text=reply))
        logger.info("[%s] user: %s", session_id, user_text)
        logger.info("[%s] interviewer: %s", session_id, reply)
        return reply

    def start_interview(self, session_id: str) -> str:
        """Ask the model for its opening question.

        Only the fixed opening instruction is sent, not the prior history;
        both it and the reply are recorded afterwards so the evaluation sees
        the full exchange.
        """
        history = self._histories.setdefault(session_id, [])
        opening = Turn(speaker=Speaker.USER, text=OPENING_INSTRUCTION)

        reply = self.provider.complete(SYSTEM_PROMPT, [opening], self.max_tokens)

        history.append(opening)
        history.append(Turn(speaker=Speaker.ASSISTANT, text=reply))
        logger.info("[%s] interview started: %s", session_id, reply)
        return reply

    def get_history(self, session_id: str) -> list[Turn]:
        """Return a copy of the session's turns; empty if none exist."""
        return list(self._histories.get(session_id, []))

    def clear_history(self, session_id: str) -> None:
        self._histories.pop(session_id, None)
        logger.debug("Cleared history for session %s", session_id)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._histories

"""Dual-provider chat-completion client (Anthropic / OpenAI).

Both the conversation engine and the evaluation engine talk to the chat
model through ``ComputeClient.complete``; which SDK is used is decided by
the ``INTERVIEWER_LLM_PROVIDER`` setting.  Provider errors are logged and
re-raised as-is so callers can surface the original message.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from interviewer.config import Settings, get_settings
from interviewer.models import Turn

logger = logging.getLogger(__name__)


class ComputeUnavailableError(RuntimeError):
    """Raised when no API key is configured for the chat provider."""


class ComputeClient:
    """Unified chat interface over Anthropic and OpenAI backends.

    Usage::

        client = ComputeClient()           # reads provider from Settings
        text = client.complete(system_prompt, turns)
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self._openai_client: Optional[object] = None
        self._anthropic_client: Optional[object] = None

    @property
    def provider(self) -> str:
        return self.settings.llm_provider

    @property
    def model(self) -> str:
        return self.settings.active_model

    @property
    def available(self) -> bool:
        return self.settings.compute_available

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def complete(
        self,
        system_prompt: Optional[str],
        turns: Sequence[Turn],
        max_tokens: int = 500,
    ) -> str:
        """Send the whole turn sequence and return the assistant text.

        ``system_prompt`` may be ``None`` for single-shot prompts that carry
        their instructions in the user turn.
        """
        if not self.available:
            raise ComputeUnavailableError(
                f"Chat provider '{self.provider}' has no API key.  Set "
                f"ANTHROPIC_API_KEY or OPENAI_API_KEY."
            )

        messages = [turn.to_message() for turn in turns]
        if self.provider == "anthropic":
            return self._complete_anthropic(system_prompt, messages, max_tokens)
        return self._complete_openai(system_prompt, messages, max_tokens)

    # ------------------------------------------------------------------
    # OpenAI backend
    # ------------------------------------------------------------------
    def _get_openai_client(self):  # -> openai.OpenAI
        if self._openai_client is None:
            from openai import OpenAI

            self._openai_client = OpenAI(api_key=self.settings.openai_api_key)
        return self._openai_client

    def _complete_openai(
        self,
        system_prompt: Optional[str],
        messages: list[dict[str, str]],
        max_tokens: int,
    ) -> str:
        if system_prompt:
            messages = [{"role": "system", "content": system_prompt}, *messages]
        try:
            client = self._get_openai_client()
            response = client.chat.completions.create(
                model=self.settings.openai_chat_model,
                messages=messages,
                max_tokens=max_tokens,
            )
            return response.choices[0].message.content or ""
        except Exception:
            logger.exception("OpenAI chat call failed")
            raise

    # ------------------------------------------------------------------
    # Anthropic backend
    # ------------------------------------------------------------------
    def _get_anthropic_client(self):  # -> anthropic.Anthropic
        if self._anthropic_client is None:
            import anthropic

            self._anthropic_client = anthropic.Anthropic(
                api_key=self.settings.anthropic_api_key,
            )
        return self._anthropic_client

    def _complete_anthropic(
        self,
        system_prompt: Optional[str],
        messages: list[dict[str, str]],
        max_tokens: int,
    ) -> str:
        kwargs = {
            "model": self.settings.anthropic_model,
            "max_tokens": max_tokens,
            "messages": messages,
        }
        if system_prompt:
            kwargs["system"] = system_prompt
        try:
            client = self._get_anthropic_client()
            response = client.messages.create(**kwargs)
            # Only the first content block is the reply; non-text blocks yield "".
            if response.content and response.content[0].type == "text":
                return response.content[0].text
            return ""
        except Exception:
            logger.exception("Anthropic chat call failed")
            raise

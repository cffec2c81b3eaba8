"""Text-to-speech for the interview gateway.

Two engines:

1. **OpenAI TTS** — ``tts-1`` with the ``nova`` voice by default.  Shares
   the OpenAI key used for transcription.
2. **ElevenLabs** — REST API over httpx with its own key; shares the
   speed setting with the OpenAI engine.

Both return encoded audio bytes that the gateway base64-encodes into the
``ai-audio`` event for browser playback.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import httpx

from interviewer.config import Settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Common interface
# ---------------------------------------------------------------------------

class SpeechSynthesizer(Protocol):
    """Protocol that all TTS backends implement."""

    def synthesize(self, text: str) -> bytes:
        """Return encoded audio bytes for the given text."""
        ...

    @property
    def available(self) -> bool:
        """Whether this engine is usable."""
        ...


# ---------------------------------------------------------------------------
# OpenAI TTS
# ---------------------------------------------------------------------------

class OpenAITTS:
    """Cloud text-to-speech via the OpenAI audio API.

    Parameters
    ----------
    api_key : str
        OpenAI API key.
    model : str
        ``tts-1`` (fast) or ``tts-1-hd``.
    voice : str
        One of the provider's built-in voices.
    speed : float
        Playback speed multiplier, 1.0 is normal.
    client : object or None
        Pre-built ``openai.OpenAI`` client.
    """

    def __init__(
        self,
        api_key: str = "",
        model: str = "tts-1",
        voice: str = "nova",
        speed: float = 1.0,
        client: Optional[object] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.voice = voice
        self.speed = speed
        self._client = client

    @property
    def available(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self):  # -> openai.OpenAI
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def synthesize(self, text: str) -> bytes:
        """Synthesize text to MP3 bytes."""
        if not self.available:
            raise RuntimeError("OpenAI TTS not available — set OPENAI_API_KEY")

        logger.info("TTS request: %s...", text[:50])
        try:
            response = self._get_client().audio.speech.create(
                model=self.model,
                voice=self.voice,
                input=text,
                speed=self.speed,
            )
        except Exception:
            logger.exception("OpenAI TTS synthesis failed")
            raise
        audio = response.content
        logger.info("TTS produced %d bytes", len(audio))
        return audio


# ---------------------------------------------------------------------------
# ElevenLabs TTS (cloud)
# ---------------------------------------------------------------------------

class ElevenLabsTTS:
    """Cloud text-to-speech via the ElevenLabs REST API.

    Mirrors :class:`OpenAITTS`: same ``speed`` setting, MP3 output and an
    optional pre-built client.

    Parameters
    ----------
    api_key : str
        ElevenLabs API key.
    voice_id : str
        Voice to speak with.
    model_id : str
        Synthesis model.
    speed : float
        Playback speed multiplier, 1.0 is normal.
    client : httpx.Client or None
        Pre-built client; a module-level ``httpx.post`` is used otherwise.
    """

    BASE_URL = "https://api.elevenlabs.io/v1/text-to-speech"
    OUTPUT_FORMAT = "mp3_44100_128"

    def __init__(
        self,
        api_key: str = "",
        voice_id: str = "21m00Tcm4TlvDq8ikWAM",
        model_id: str = "eleven_multilingual_v2",
        speed: float = 1.0,
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ) -> None:
        self.api_key = api_key
        self.voice_id = voice_id
        self.model_id = model_id
        self.speed = speed
        self.timeout = timeout
        self._client = client

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    def synthesize(self, text: str) -> bytes:
        """Synthesize text to MP3 bytes."""
        if not self.available:
            raise RuntimeError("ElevenLabs TTS not available — set ELEVENLABS_API_KEY")

        logger.info("TTS request (elevenlabs): %s...", text[:50])
        post = self._client.post if self._client is not None else httpx.post
        try:
            resp = post(
                f"{self.BASE_URL}/{self.voice_id}",
                params={"output_format": self.OUTPUT_FORMAT},
                headers={"xi-api-key": self.api_key},
                json={
                    "text": text,
                    "model_id": self.model_id,
                    "voice_settings": {"speed": self.speed},
                },
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except httpx.HTTPError:
            logger.exception("ElevenLabs TTS synthesis failed")
            raise
        audio = resp.content
        logger.info("TTS produced %d bytes", len(audio))
        return audio


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def create_synthesizer(
    settings: Settings, require_available: bool = True
) -> SpeechSynthesizer:
    """Create the TTS engine selected by ``INTERVIEWER_TTS_PROVIDER``.

    Raises RuntimeError if the selected engine has no API key, unless
    ``require_available`` is False, in which case the unusable engine is
    returned and fails on first ``synthesize``.
    """
    if settings.tts_provider == "elevenlabs":
        engine: SpeechSynthesizer = ElevenLabsTTS(
            api_key=settings.elevenlabs_api_key,
            voice_id=settings.elevenlabs_voice_id,
            model_id=settings.elevenlabs_model_id,
            speed=settings.tts_speed,
        )
    else:
        engine = OpenAITTS(
            api_key=settings.openai_api_key,
            model=settings.tts_model,
            voice=settings.tts_voice,
            speed=settings.tts_speed,
        )

    if not engine.available:
        if not require_available:
            logger.warning("TTS provider '%s' has no API key", settings.tts_provider)
            return engine
        raise RuntimeError(
            f"No TTS engine available for provider '{settings.tts_provider}'. "
            "Set OPENAI_API_KEY or ELEVENLABS_API_KEY."
        )
    logger.info("Using %s TTS", settings.tts_provider)
    return engine

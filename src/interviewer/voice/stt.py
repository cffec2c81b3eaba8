"""Whisper API speech-to-text for the interview gateway.

The browser records with ``MediaRecorder`` and streams ``audio/webm``
chunks; the gateway concatenates them and hands the whole utterance to
:class:`OpenAITranscriber`.  The Whisper endpoint wants a named file, so
each call spools the audio to a temp file that is removed on every exit
path.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class Transcriber(Protocol):
    """Protocol that all STT backends implement."""

    def transcribe(self, audio: bytes, language: Optional[str] = None) -> str:
        """Return the text spoken in ``audio``."""
        ...


class OpenAITranscriber:
    """Cloud speech-to-text via the OpenAI Whisper API.

    Parameters
    ----------
    api_key : str
        OpenAI API key.
    model : str
        Transcription model, ``whisper-1`` by default.
    language : str
        Default ISO language hint used when a call passes none.
    temp_dir : str or Path or None
        Directory for the spooled audio file.  Created on first use.
        ``None`` uses the system temp directory.
    suffix : str
        File extension that tells the provider which container it gets.
    client : object or None
        Pre-built ``openai.OpenAI`` client (tests inject a fake here).
    """

    def __init__(
        self,
        api_key: str = "",
        model: str = "whisper-1",
        language: str = "en",
        temp_dir: str | Path | None = None,
        suffix: str = ".webm",
        client: Optional[object] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.language = language
        self.temp_dir = Path(temp_dir) if temp_dir else None
        self.suffix = suffix
        self._client = client

    @property
    def available(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self):  # -> openai.OpenAI
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def transcribe(self, audio: bytes, language: Optional[str] = None) -> str:
        """Transcribe one complete utterance.

        Raises whatever the provider raises; the spooled file is deleted
        either way.
        """
        if not self.available:
            raise RuntimeError("Transcription not available — set OPENAI_API_KEY")

        if self.temp_dir is not None:
            self.temp_dir.mkdir(parents=True, exist_ok=True)

        with tempfile.NamedTemporaryFile(
            prefix="audio-", suffix=self.suffix, dir=self.temp_dir, delete=False
        ) as tmp:
            tmp.write(audio)
            tmp_path = Path(tmp.name)
        logger.debug("Spooled %d audio bytes to %s", len(audio), tmp_path)

        try:
            client = self._get_client()
            with tmp_path.open("rb") as fh:
                result = client.audio.transcriptions.create(
                    file=fh,
                    model=self.model,
                    language=language or self.language,
                )
            text = result.text
            logger.info("Transcription: %s", text)
            return text
        finally:
            tmp_path.unlink(missing_ok=True)

"""Central configuration loaded from environment / .env file."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

_PROJECT_ROOT = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # Chat provider — defaults to Anthropic (Claude)
    llm_provider: Literal["openai", "anthropic"] = Field(
        default="anthropic", alias="INTERVIEWER_LLM_PROVIDER"
    )

    # Anthropic-native chat settings
    anthropic_api_key: str = Field(default="", alias="ANTHROPIC_API_KEY")
    anthropic_model: str = Field(default="claude-3-haiku-20240307", alias="ANTHROPIC_MODEL")

    # OpenAI (chat, Whisper and TTS share one key)
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_chat_model: str = Field(default="gpt-4o-mini", alias="OPENAI_CHAT_MODEL")

    chat_max_tokens: int = Field(default=500, alias="INTERVIEWER_CHAT_MAX_TOKENS")
    evaluation_max_tokens: int = Field(
        default=1024, alias="INTERVIEWER_EVALUATION_MAX_TOKENS"
    )

    # Speech-to-text
    stt_model: str = Field(default="whisper-1", alias="INTERVIEWER_STT_MODEL")
    language: str = Field(
        default="en", alias="INTERVIEWER_LANGUAGE",
        description="Language hint passed to the transcription provider",
    )
    temp_dir: Path = Field(
        default=_PROJECT_ROOT / "temp", alias="INTERVIEWER_TEMP_DIR",
        description="Where buffered audio is spooled for the duration of one transcription",
    )

    # Text-to-speech
    tts_provider: Literal["openai", "elevenlabs"] = Field(
        default="openai", alias="INTERVIEWER_TTS_PROVIDER"
    )
    tts_model: str = Field(default="tts-1", alias="INTERVIEWER_TTS_MODEL")
    tts_voice: str = Field(default="nova", alias="INTERVIEWER_TTS_VOICE")
    tts_speed: float = Field(default=1.0, alias="INTERVIEWER_TTS_SPEED")
    elevenlabs_api_key: str = Field(default="", alias="ELEVENLABS_API_KEY")
    elevenlabs_voice_id: str = Field(
        default="21m00Tcm4TlvDq8ikWAM", alias="ELEVENLABS_VOICE_ID"
    )
    elevenlabs_model_id: str = Field(
        default="eleven_multilingual_v2", alias="ELEVENLABS_MODEL_ID"
    )

    # Server
    host: str = Field(default="127.0.0.1", alias="INTERVIEWER_HOST")
    port: int = Field(default=3001, alias="INTERVIEWER_PORT")
    cors_origins: list[str] = Field(default=["*"], alias="INTERVIEWER_CORS_ORIGINS")

    # Logging
    log_level: str = Field(default="INFO", alias="INTERVIEWER_LOG_LEVEL")

    model_config = {
        "env_file": str(_PROJECT_ROOT / ".env"),
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @property
    def active_model(self) -> str:
        """Return the chat model name for the currently selected provider."""
        if self.llm_provider == "anthropic":
            return self.anthropic_model
        return self.openai_chat_model

    @property
    def resolved_llm_api_key(self) -> str:
        """Return the API key for the active chat provider."""
        if self.llm_provider == "anthropic":
            return self.anthropic_api_key
        return self.openai_api_key

    @property
    def compute_available(self) -> bool:
        """True when the selected chat provider has an API key configured."""
        return bool(self.resolved_llm_api_key)

    @property
    def transcription_available(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def speech_available(self) -> bool:
        """True when the selected TTS provider has an API key configured."""
        if self.tts_provider == "elevenlabs":
            return bool(self.elevenlabs_api_key)
        return bool(self.openai_api_key)


def get_settings() -> Settings:
    """Return a cached Settings instance."""
    if not hasattr(get_settings, "_instance"):
        get_settings._instance = Settings()  # type: ignore[attr-defined]
    return get_settings._instance  # type: ignore[attr-defined]

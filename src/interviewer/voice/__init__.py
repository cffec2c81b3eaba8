"""Speech I/O: Whisper API transcription and TTS backends."""

from interviewer.voice.stt import OpenAITranscriber, Transcriber
from interviewer.voice.tts import (
    ElevenLabsTTS,
    OpenAITTS,
    SpeechSynthesizer,
    create_synthesizer,
)

__all__ = [
    "ElevenLabsTTS",
    "OpenAITTS",
    "OpenAITranscriber",
    "SpeechSynthesizer",
    "Transcriber",
    "create_synthesizer",
]

"""Session gateway — turns inbound client events into pipeline runs.

One :class:`InterviewGateway` serves every connection.  The transport
registers an ``emit`` coroutine per session on connect; handlers push
outbound events through it.

Inbound → outbound::

    audio-data       → (buffered, nothing sent)
    audio-complete   → transcription, ai-response, ai-audio | processing-error
    text-message     → ai-response, ai-audio | processing-error
    start-interview  → ai-response, ai-audio | processing-error
    end-interview    → evaluation-complete | evaluation-error
    get-evaluation   → evaluation-result | evaluation-error

Provider calls are blocking SDK calls and run in the default executor;
they are the only points where a run suspends.  Runs for one session are
serialised by ``Session.run_lock`` in arrival order.  ``ai-response`` is
sent as soon as the reply text exists and is never retracted when speech
synthesis fails afterwards.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Coroutine, Optional

from interviewer.conversation import ConversationEngine
from interviewer.evaluation import EvaluationEngine
from interviewer.sessions import Session, SessionRegistry, SessionState
from interviewer.voice.stt import Transcriber
from interviewer.voice.tts import SpeechSynthesizer

logger = logging.getLogger(__name__)

Emit = Callable[[str, dict], Awaitable[None]]

# Outbound event names
TRANSCRIPTION = "transcription"
AI_RESPONSE = "ai-response"
AI_AUDIO = "ai-audio"
PROCESSING_ERROR = "processing-error"
EVALUATION_COMPLETE = "evaluation-complete"
EVALUATION_ERROR = "evaluation-error"
EVALUATION_RESULT = "evaluation-result"


class UnknownSessionError(KeyError):
    """Raised when an event names a session that is not registered."""


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class InterviewGateway:
    """Owns the session registry and drives the engines for each event.

    Parameters
    ----------
    conversation : ConversationEngine
    evaluation : EvaluationEngine
    transcriber : Transcriber
    synthesizer : SpeechSynthesizer
    registry : SessionRegistry or None
        A fresh registry is created when omitted.
    language : str
        Language hint for transcription.
    """

    def __init__(
        self,
        conversation: ConversationEngine,
        evaluation: EvaluationEngine,
        transcriber: Transcriber,
        synthesizer: SpeechSynthesizer,
        registry: Optional[SessionRegistry] = None,
        language: str = "en",
    ) -> None:
        self.conversation = conversation
        self.evaluation = evaluation
        self.transcriber = transcriber
        self.synthesizer = synthesizer
        self.registry = registry or SessionRegistry()
        self.language = language
        self._emitters: dict[str, Emit] = {}
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def connect(self, emit: Emit, session_id: Optional[str] = None) -> Session:
        """Create an empty session bound to ``emit``."""
        session = self.registry.create(session_id)
        self._emitters[session.session_id] = emit
        return session

    def disconnect(self, session_id: str) -> None:
        """Discard the session's audio buffer and history.

        A run already in flight stops after its current provider call and
        its events are dropped.  A stored evaluation is kept.
        """
        self._emitters.pop(session_id, None)
        self.registry.remove(session_id)
        self.conversation.clear_history(session_id)

    # ------------------------------------------------------------------
    # Inbound events
    # ------------------------------------------------------------------
    def receive_audio(self, session_id: str, chunk: bytes) -> None:
        session = self._require(session_id)
        session.append_audio(chunk)
        logger.debug("[%s] audio chunk: %d bytes", session_id, len(chunk))

    def complete_audio(self, session_id: str) -> Optional[asyncio.Task]:
        """Flush the buffered utterance into a transcription run.

        The buffer is taken immediately so chunks of the next utterance
        that arrive while this run is queued are not mixed in.  Returns
        ``None`` (and sends nothing) when the buffer is empty.
        """
        session = self._require(session_id)
        audio = session.take_audio()
        if not audio:
            logger.warning("[%s] audio-complete with no buffered audio", session_id)
            return None
        logger.info("[%s] processing %d bytes of audio", session_id, len(audio))
        return self._schedule(session, self._audio_run(session, audio))

    def text_message(self, session_id: str, text: str) -> asyncio.Task:
        session = self._require(session_id)
        logger.info("[%s] text message: %s", session_id, text)
        return self._schedule(session, self._text_run(session, text))

    def start_interview(self, session_id: str) -> asyncio.Task:
        session = self._require(session_id)
        logger.info("[%s] start interview", session_id)
        return self._schedule(session, self._opening_run(session))

    def end_interview(self, session_id: str) -> asyncio.Task:
        session = self._require(session_id)
        logger.info("[%s] end interview", session_id)
        return self._schedule(session, self._evaluation_run(session))

    def get_evaluation(self, session_id: str) -> asyncio.Task:
        session = self._require(session_id)
        return self._schedule(session, self._lookup_evaluation(session))

    async def drain(self) -> None:
        """Wait for every scheduled run to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------
    async def _audio_run(self, session: Session, audio: bytes) -> None:
        sid = session.session_id
        try:
            text = await self._offload(self.transcriber.transcribe, audio, self.language)
            if not self._alive(session):
                return
            await self._emit(sid, TRANSCRIPTION, {"text": text, "timestamp": _timestamp()})
            await self._reply(session, self.conversation.chat, sid, text)
        except Exception as exc:
            logger.exception("[%s] audio pipeline failed", sid)
            await self._emit(sid, PROCESSING_ERROR, {
                "message": "Failed to process audio",
                "error": str(exc),
            })

    async def _text_run(self, session: Session, text: str) -> None:
        sid = session.session_id
        try:
            if not text.strip():
                raise ValueError("Message is empty")
            await self._reply(session, self.conversation.chat, sid, text)
        except Exception as exc:
            logger.exception("[%s] text chat failed", sid)
            await self._emit(sid, PROCESSING_ERROR, {
                "message": "Failed to generate response",
                "error": str(exc),
            })

    async def _opening_run(self, session: Session) -> None:
        sid = session.session_id
        try:
            await self._reply(session, self.conversation.start_interview, sid)
        except Exception as exc:
            logger.exception("[%s] interview start failed", sid)
            await self._emit(sid, PROCESSING_ERROR, {
                "message": "Failed to start interview",
                "error": str(exc),
            })

    async def _evaluation_run(self, session: Session) -> None:
        sid = session.session_id
        history = self.conversation.get_history(sid)
        if not history:
            logger.warning("[%s] end-interview with empty history", sid)
            await self._emit(sid, EVALUATION_ERROR, {"error": "No conversation history"})
            return

        try:
            record = await self._offload(self.evaluation.evaluate_candidate, sid, history)
        except Exception as exc:
            logger.exception("[%s] evaluation failed", sid)
            await self._emit(sid, EVALUATION_ERROR, {
                "error": f"Failed to generate evaluation: {exc}",
            })
            return

        session.evaluated = True
        await self._emit(sid, EVALUATION_COMPLETE, record.to_payload())

    async def _lookup_evaluation(self, session: Session) -> None:
        sid = session.session_id
        record = self.evaluation.get_evaluation(sid)
        if record is None:
            await self._emit(sid, EVALUATION_ERROR, {"error": "Evaluation result not found"})
            return
        await self._emit(sid, EVALUATION_RESULT, record.to_payload())

    async def _reply(
        self, session: Session, produce: Callable[..., str], *args: Any
    ) -> None:
        """Get the interviewer's reply, send it as text, then as speech.

        Stops early once the session has disconnected, so no history is
        recreated and no speech is synthesised for it.
        """
        session_id = session.session_id
        if not self._alive(session):
            return
        reply = await self._offload(produce, *args)
        if not self._alive(session):
            return
        await self._emit(session_id, AI_RESPONSE, {"message": reply, "timestamp": _timestamp()})

        audio = await self._offload(self.synthesizer.synthesize, reply)
        await self._emit(session_id, AI_AUDIO, {
            "audio": base64.b64encode(audio).decode("ascii"),
        })

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------
    def _require(self, session_id: str) -> Session:
        session = self.registry.get(session_id)
        if session is None:
            raise UnknownSessionError(session_id)
        return session

    def _alive(self, session: Session) -> bool:
        if self.registry.get(session.session_id) is session:
            return True
        logger.info("[%s] session gone, stopping run", session.session_id)
        return False

    def _schedule(
        self, session: Session, run: Coroutine[Any, Any, None]
    ) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self._serialised(session, run))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _serialised(
        self, session: Session, run: Coroutine[Any, Any, None]
    ) -> None:
        async with session.run_lock:
            if session.session_id not in self.registry:
                logger.info("[%s] session gone, skipping queued run", session.session_id)
                run.close()
                return
            session.state = SessionState.PROCESSING
            try:
                await run
            finally:
                session.settle()
                if session.session_id not in self.registry:
                    # A provider call that was already running may have
                    # written turns after disconnect cleared them.
                    self.conversation.clear_history(session.session_id)

    async def _offload(self, fn: Callable[..., Any], *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn, *args)

    async def _emit(self, session_id: str, event: str, data: dict) -> None:
        emit = self._emitters.get(session_id)
        if emit is None:
            logger.debug("[%s] session gone, dropping %s", session_id, event)
            return
        await emit(event, data)

"""WebSocket server bridging the browser interview UI to the gateway.

Runs as a FastAPI application.  Each browser tab opens one WebSocket;
the connection *is* the session, and closing it ends the session.

Message protocol
----------------
Text frames are JSON envelopes in both directions::

    {"event": "<name>", "data": <payload>}

Client → server::

    {"event": "audio-data", "data": "<base64>"}   # or a binary frame
    {"event": "audio-complete"}
    {"event": "text-message", "data": {"message": "..."}}
    {"event": "start-interview"}
    {"event": "end-interview"}
    {"event": "get-evaluation"}

Binary frames are ``audio-data`` chunks (webm/opus from MediaRecorder).

Server → client::

    connected            {"sessionId"}
    transcription        {"text", "timestamp"}
    ai-response          {"message", "timestamp"}
    ai-audio             {"audio": base64}
    processing-error     {"message", "error"}
    evaluation-complete  EvaluationRecord
    evaluation-result    EvaluationRecord
    evaluation-error     {"error"}
    error                {"message"}   # malformed frame / unknown event
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from interviewer.compute import ComputeClient
from interviewer.config import Settings, get_settings
from interviewer.conversation import ConversationEngine
from interviewer.evaluation import EvaluationEngine
from interviewer.gateway import Emit, InterviewGateway
from interviewer.voice.stt import OpenAITranscriber
from interviewer.voice.tts import create_synthesizer

logger = logging.getLogger(__name__)


def build_gateway(settings: Settings) -> InterviewGateway:
    """Wire the engines and speech clients described by ``settings``."""
    compute = ComputeClient(settings)
    if not compute.available:
        logger.warning("Chat provider '%s' has no API key", settings.llm_provider)
    return InterviewGateway(
        conversation=ConversationEngine(compute, max_tokens=settings.chat_max_tokens),
        evaluation=EvaluationEngine(compute, max_tokens=settings.evaluation_max_tokens),
        transcriber=OpenAITranscriber(
            api_key=settings.openai_api_key,
            model=settings.stt_model,
            language=settings.language,
            temp_dir=settings.temp_dir,
        ),
        synthesizer=create_synthesizer(settings, require_available=False),
        language=settings.language,
    )


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_interface_app(
    settings: Optional[Settings] = None,
    gateway: Optional[InterviewGateway] = None,
) -> FastAPI:
    """Build the interviewer FastAPI application.

    Exposes a WebSocket at ``/ws`` plus read-only HTTP endpoints for
    health and stored evaluations.
    """
    settings = settings or get_settings()
    gw = gateway or build_gateway(settings)

    app = FastAPI(title="AI Interviewer", version="0.1.0")
    app.state.gateway = gw
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "sessions": len(gw.registry),
            "llm_provider": settings.llm_provider,
            "compute_available": settings.compute_available,
            "transcription_available": settings.transcription_available,
            "speech_available": settings.speech_available,
        }

    @app.get("/evaluations")
    async def list_evaluations():
        return {
            sid: record.to_payload()
            for sid, record in gw.evaluation.all_evaluations().items()
        }

    @app.get("/evaluations/{session_id}")
    async def get_evaluation(session_id: str):
        record = gw.evaluation.get_evaluation(session_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Evaluation result not found")
        return record.to_payload()

    # ---- WebSocket handler ----

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket):
        await ws.accept()

        async def send_event(event: str, data: dict) -> None:
            try:
                await ws.send_text(json.dumps({"event": event, "data": data}))
            except Exception:
                logger.debug("Dropped %s for closed connection", event, exc_info=True)

        session = gw.connect(send_event)
        sid = session.session_id
        logger.info("Client connected: %s", sid)
        await send_event("connected", {"sessionId": sid})

        try:
            while True:
                msg = await ws.receive()
                if msg["type"] == "websocket.disconnect":
                    break

                # -- binary: audio chunk --
                if msg.get("bytes"):
                    gw.receive_audio(sid, bytes(msg["bytes"]))
                    continue

                # -- text: JSON envelope --
                if not msg.get("text"):
                    continue
                try:
                    envelope = json.loads(msg["text"])
                except json.JSONDecodeError:
                    await send_event("error", {"message": "Invalid JSON"})
                    continue
                if not isinstance(envelope, dict):
                    await send_event("error", {"message": "Expected an event envelope"})
                    continue

                await _dispatch(gw, sid, envelope, send_event)

        except WebSocketDisconnect:
            pass
        except Exception:
            logger.exception("WebSocket error")
        finally:
            gw.disconnect(sid)
            logger.info("Client disconnected: %s", sid)

    return app


# ---------------------------------------------------------------------------
# Event dispatch
# ---------------------------------------------------------------------------

async def _dispatch(
    gw: InterviewGateway, sid: str, envelope: dict, send_event: Emit
) -> None:
    """Route one inbound envelope to the matching gateway handler."""
    event = envelope.get("event", "")
    data = envelope.get("data")

    if event == "audio-data":
        try:
            chunk = base64.b64decode(data or "", validate=True)
        except (binascii.Error, TypeError, ValueError):
            await send_event("error", {"message": "audio-data must be base64"})
            return
        if chunk:
            gw.receive_audio(sid, chunk)
        return

    if event == "audio-complete":
        gw.complete_audio(sid)
        return

    if event == "text-message":
        message = data.get("message") if isinstance(data, dict) else None
        gw.text_message(sid, "" if message is None else str(message))
        return

    if event == "start-interview":
        gw.start_interview(sid)
        return

    if event == "end-interview":
        gw.end_interview(sid)
        return

    if event == "get-evaluation":
        gw.get_evaluation(sid)
        return

    await send_event("error", {"message": f"Unknown event: {event}"})

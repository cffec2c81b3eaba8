"""Per-connection session state and the registry that owns it."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Audio side of a session's lifecycle."""

    IDLE = "idle"  # connected, nothing buffered
    BUFFERING = "buffering"  # chunks accumulated, not yet flushed
    PROCESSING = "processing"  # a pipeline run is in flight


@dataclass
class Session:
    """Server-side state for one client connection."""

    session_id: str
    audio_chunks: list[bytes] = field(default_factory=list)
    state: SessionState = SessionState.IDLE
    evaluated: bool = False
    # At most one pipeline run per session; later triggers queue in order.
    run_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def buffered_bytes(self) -> int:
        return sum(len(c) for c in self.audio_chunks)

    def append_audio(self, chunk: bytes) -> None:
        self.audio_chunks.append(chunk)
        if self.state is SessionState.IDLE:
            self.state = SessionState.BUFFERING

    def take_audio(self) -> bytes:
        """Concatenate and clear the accumulator."""
        data = b"".join(self.audio_chunks)
        self.audio_chunks.clear()
        if self.state is SessionState.BUFFERING:
            self.state = SessionState.IDLE
        return data

    def settle(self) -> None:
        """Leave PROCESSING once a pipeline run has finished."""
        self.state = SessionState.BUFFERING if self.audio_chunks else SessionState.IDLE


class SessionRegistry:
    """Map of session id to :class:`Session`, created on connect and dropped on disconnect."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def create(self, session_id: Optional[str] = None) -> Session:
        """Register a new empty session.

        Raises ValueError if ``session_id`` is still registered.
        """
        session_id = session_id or uuid.uuid4().hex
        if session_id in self._sessions:
            raise ValueError(f"Session {session_id} is already registered")
        session = Session(session_id=session_id)
        self._sessions[session_id] = session
        logger.info("Session created: %s", session_id)
        return session

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Optional[Session]:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.audio_chunks.clear()
            logger.info("Session removed: %s", session_id)
        return session

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions.values()))

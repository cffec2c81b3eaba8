"""Core domain models used across the application."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ======================================================================
# Conversation
# ======================================================================
class Speaker(str, Enum):
    """Who produced a turn. Values match the chat providers' message roles."""

    USER = "user"
    ASSISTANT = "assistant"


class Turn(BaseModel):
    """One utterance in a session's conversation history."""

    speaker: Speaker
    text: str

    def to_message(self) -> dict[str, str]:
        """Render as a chat-completion message."""
        return {"role": self.speaker.value, "content": self.text}


# ======================================================================
# Evaluation
# ======================================================================
class EvaluationScores(BaseModel):
    """Five rubric scores, each conventionally 1-10.

    Values are whatever the grader returned: nothing is coerced, missing
    criteria stay missing and extra keys are kept.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    communication: Any = None
    technical: Any = None
    motivation: Any = None
    problem_solving: Any = Field(None, alias="problemSolving")
    overall: Any = None


class EvaluationComments(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    strengths: Any = Field(default_factory=list)
    improvements: Any = Field(default_factory=list)
    summary: Any = ""


class EvaluationRecord(BaseModel):
    """Graded result of one interview, keyed by session id in the engine."""

    model_config = ConfigDict(populate_by_name=True)

    scores: EvaluationScores
    comments: EvaluationComments
    evaluated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="evaluatedAt"
    )

    def to_payload(self) -> dict:
        """JSON-safe dict using the wire (camelCase) field names.

        ``scores`` and ``comments`` carry only the keys the grader sent.
        """
        payload = self.model_dump(mode="json", by_alias=True)
        payload["scores"] = self.scores.model_dump(
            mode="json", by_alias=True, exclude_unset=True
        )
        payload["comments"] = self.comments.model_dump(mode="json", exclude_unset=True)
        return payload

"""Candidate evaluation — grade a finished interview with the chat model.

The model is asked for a JSON object but often wraps it in prose, so
parsing is split in two steps that can be tested independently:

1. :func:`extract_json_block` — tolerant; slices from the first ``{`` to
   the last ``}`` and returns ``None`` when there is no such span.
2. :func:`validate_evaluation` — strict; the slice must parse as JSON,
   and carry both ``scores`` and ``comments`` as objects.  Their contents
   are not checked; the grader's values are kept exactly as sent.

:func:`parse_evaluation` composes them and substitutes the fixed
:func:`fallback_evaluation` on any failure.  Provider errors are *not*
recovered here; they propagate to the caller.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from interviewer.conversation import ChatProvider
from interviewer.models import (
    EvaluationComments,
    EvaluationRecord,
    EvaluationScores,
    Speaker,
    Turn,
)

logger = logging.getLogger(__name__)


class EmptyHistoryError(ValueError):
    """Raised when asked to evaluate a session with no turns."""


class EvaluationParseError(ValueError):
    """Raised by the strict validation step."""


# ======================================================================
# Prompt
# ======================================================================

_SPEAKER_LABELS = {
    Speaker.ASSISTANT: "interviewer",
    Speaker.USER: "candidate",
}

GRADING_TEMPLATE = """\
Below is the transcript of a job interview. Evaluate the candidate on the \
five criteria that follow.

=== TRANSCRIPT ===
{transcript}
==================

CRITERIA (each scored 1-10)
1. communication: answers the question asked, explains logically, easy to follow
2. technical: depth of domain knowledge, richness of concrete examples
3. motivation: clarity of reasons for applying, career vision
4. problemSolving: logical thinking, adaptability to situations
5. overall: overall impression

OUTPUT FORMAT
Respond with JSON in exactly this shape and nothing else:

{{
  "scores": {{
    "communication": 8,
    "technical": 7,
    "motivation": 9,
    "problemSolving": 6,
    "overall": 7.5
  }},
  "comments": {{
    "strengths": ["Has a clear career vision", "Gives concrete examples"],
    "improvements": ["Technical answers lack depth"],
    "summary": "Communicates well and shows real enthusiasm. More concrete technical detail would strengthen the profile."
  }}
}}
"""


def render_transcript(history: Sequence[Turn]) -> str:
    """Format turns as ``interviewer: ...`` / ``candidate: ...`` paragraphs."""
    return "\n\n".join(
        f"{_SPEAKER_LABELS[turn.speaker]}: {turn.text}" for turn in history
    )


def build_grading_prompt(transcript: str) -> str:
    return GRADING_TEMPLATE.format(transcript=transcript)


# ======================================================================
# Parsing
# ======================================================================

FALLBACK_SCORE = 5
FALLBACK_STRENGTH = "Failed to generate evaluation data"
FALLBACK_SUMMARY = "Please retry the evaluation."


def fallback_evaluation() -> tuple[EvaluationScores, EvaluationComments]:
    """Neutral record used whenever the model's reply cannot be parsed."""
    scores = EvaluationScores(
        communication=FALLBACK_SCORE,
        technical=FALLBACK_SCORE,
        motivation=FALLBACK_SCORE,
        problem_solving=FALLBACK_SCORE,
        overall=FALLBACK_SCORE,
    )
    comments = EvaluationComments(
        strengths=[FALLBACK_STRENGTH],
        improvements=[],
        summary=FALLBACK_SUMMARY,
    )
    return scores, comments


def extract_json_block(text: str) -> Optional[str]:
    """Return the span from the first ``{`` to the last ``}``, if any."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    return text[start : end + 1]


def validate_evaluation(block: str) -> dict:
    """Parse ``block`` and check both sections are present.

    Returns the decoded dict unchanged.
    """
    try:
        data = json.loads(block)
    except json.JSONDecodeError as exc:
        raise EvaluationParseError(f"Evaluation is not valid JSON: {exc}") from exc

    if (
        not isinstance(data, dict)
        or data.get("scores") is None
        or data.get("comments") is None
    ):
        raise EvaluationParseError("Evaluation is missing 'scores' or 'comments'")
    if not isinstance(data["scores"], dict) or not isinstance(data["comments"], dict):
        raise EvaluationParseError("'scores' and 'comments' must be JSON objects")
    return data


def parse_evaluation(text: str) -> tuple[EvaluationScores, EvaluationComments]:
    """Recover scores and comments from a model reply, or fall back."""
    block = extract_json_block(text)
    if block is None:
        logger.error("No JSON object found in evaluation reply")
        return fallback_evaluation()
    try:
        data = validate_evaluation(block)
    except EvaluationParseError:
        logger.exception("Could not parse evaluation reply")
        return fallback_evaluation()
    return (
        EvaluationScores.model_validate(data["scores"]),
        EvaluationComments.model_validate(data["comments"]),
    )


# ======================================================================
# Engine
# ======================================================================

class EvaluationEngine:
    """Grades transcripts and keeps the latest record per session.

    Records outlive the session's conversation history; they are only
    dropped by :meth:`clear_evaluation` or process exit.
    """

    def __init__(self, provider: ChatProvider, max_tokens: int = 1024) -> None:
        self.provider = provider
        self.max_tokens = max_tokens
        self._records: dict[str, EvaluationRecord] = {}

    def evaluate_candidate(
        self, session_id: str, history: Sequence[Turn]
    ) -> EvaluationRecord:
        """Grade ``history`` and store the result under ``session_id``.

        Raises :class:`EmptyHistoryError` for an empty history.  Each call
        makes a fresh model request and replaces any earlier record.
        """
        if not history:
            raise EmptyHistoryError(f"No conversation history for session {session_id}")

        logger.info("Evaluating session %s (%d turns)", session_id, len(history))
        prompt = build_grading_prompt(render_transcript(history))
        reply = self.provider.complete(
            None, [Turn(speaker=Speaker.USER, text=prompt)], self.max_tokens
        )
        logger.debug("Evaluation reply: %s", reply)

        scores, comments = parse_evaluation(reply)
        record = EvaluationRecord(
            scores=scores,
            comments=comments,
            evaluated_at=datetime.now(timezone.utc),
        )
        self._records[session_id] = record
        logger.info("Session %s evaluated: overall=%s", session_id, scores.overall)
        return record

    def get_evaluation(self, session_id: str) -> Optional[EvaluationRecord]:
        return self._records.get(session_id)

    def all_evaluations(self) -> dict[str, EvaluationRecord]:
        """Every stored record keyed by session id."""
        return dict(self._records)

    def clear_evaluation(self, session_id: str) -> None:
        self._records.pop(session_id, None)
        logger.debug("Cleared evaluation for session %s", session_id)

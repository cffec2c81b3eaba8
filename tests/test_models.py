"""Tests for the domain models."""

from datetime import datetime, timezone

from interviewer.models import (
    EvaluationComments,
    EvaluationRecord,
    EvaluationScores,
    Speaker,
    Turn,
)


def test_turn_to_message():
    turn = Turn(speaker=Speaker.USER, text="Hello")
    assert turn.to_message() == {"role": "user", "content": "Hello"}
    assert Turn(speaker="assistant", text="Hi").speaker is Speaker.ASSISTANT


def test_scores_accept_wire_and_python_names():
    wire = EvaluationScores.model_validate({
        "communication": 8, "technical": 7, "motivation": 9,
        "problemSolving": 6, "overall": 7.5,
    })
    py = EvaluationScores(
        communication=8, technical=7, motivation=9, problem_solving=6, overall=7.5
    )
    assert wire == py
    assert wire.problem_solving == 6


def test_scores_keep_grader_values_unchanged():
    scores = EvaluationScores.model_validate(
        {"communication": "8", "overall": 7, "confidence": 3}
    )
    assert scores.communication == "8"
    assert scores.technical is None
    assert scores.model_dump(by_alias=True, exclude_unset=True) == {
        "communication": "8", "overall": 7, "confidence": 3,
    }


def test_record_payload_uses_camel_case():
    record = EvaluationRecord(
        scores=EvaluationScores(
            communication=8, technical=7, motivation=9, problem_solving=6, overall=7.5
        ),
        comments=EvaluationComments(strengths=["a"], improvements=[], summary="s"),
        evaluated_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
    )
    payload = record.to_payload()
    assert payload["scores"]["problemSolving"] == 6
    assert "problem_solving" not in payload["scores"]
    assert payload["evaluatedAt"].startswith("2024-05-01T12:00:00")
    assert payload["comments"] == {"strengths": ["a"], "improvements": [], "summary": "s"}


def test_record_stamps_current_time_by_default():
    before = datetime.now(timezone.utc)
    record = EvaluationRecord(
        scores=EvaluationScores(
            communication=1, technical=1, motivation=1, problem_solving=1, overall=1
        ),
        comments=EvaluationComments(),
    )
    assert record.evaluated_at >= before

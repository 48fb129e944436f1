import pytest

from interview_assistant.interview.models import Answer, Candidate, Difficulty, InterviewStatus
from interview_assistant.interview.scorer import (
    calculate_final_score,
    clamp_score,
    fleet_analytics,
    round_half_up,
    score_band,
)


def _answer(question_id: str, score: int | None) -> Answer:
    return Answer(question_id=question_id, question="Q?", answer="A", difficulty=Difficulty.EASY, score=score)


def test_final_score_is_rounded_mean():
    answers = [_answer("q1", 80), _answer("q2", 60), _answer("q3", 100)]
    assert calculate_final_score(answers) == 80


def test_final_score_rounds_half_up():
    assert calculate_final_score([_answer("q1", 70), _answer("q2", 71)]) == 71
    assert round_half_up(2.5) == 3
    assert round_half_up(60.4999) == 60


def test_final_score_of_no_answers_is_zero():
    assert calculate_final_score([]) == 0


def test_unscored_answers_count_as_zero():
    assert calculate_final_score([_answer("q1", 90), _answer("q2", None)]) == 45


@pytest.mark.parametrize("raw,expected", [(-5, 0), (150, 100), ("72.5", 73), (None, 0), ("nope", 0)])
def test_clamp_score(raw, expected):
    assert clamp_score(raw) == expected


@pytest.mark.parametrize("score,band", [(100, "high"), (80, "high"), (79, "medium"), (60, "medium"), (59, "low"), (0, "low")])
def test_score_band_boundaries(score: int, band: str):
    assert score_band(score) == band


def test_fleet_analytics_scenario():
    candidates = []
    for index, score in enumerate([90, 70, 50, 30]):
        candidates.append(
            Candidate(
                id=f"done-{index}",
                name=f"Done {index}",
                email=f"done{index}@example.com",
                interview_status=InterviewStatus.COMPLETED,
                final_score=score,
            )
        )
    for index in range(6):
        candidates.append(
            Candidate(
                id=f"live-{index}",
                name=f"Live {index}",
                email=f"live{index}@example.com",
                interview_status=InterviewStatus.IN_PROGRESS,
            )
        )

    stats = fleet_analytics(candidates)

    assert stats["total_candidates"] == 10
    assert stats["completed_interviews"] == 4
    assert stats["in_progress_interviews"] == 6
    assert stats["not_started_interviews"] == 0
    assert stats["completion_rate"] == 40
    assert stats["average_score"] == 60
    assert stats["score_distribution"] == {"high": 1, "medium": 1, "low": 2}


def test_fleet_analytics_empty():
    stats = fleet_analytics([])
    assert stats["total_candidates"] == 0
    assert stats["average_score"] == 0
    assert stats["completion_rate"] == 0
    assert stats["score_distribution"] == {"high": 0, "medium": 0, "low": 0}

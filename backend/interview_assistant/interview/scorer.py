import math
from typing import Iterable

from interview_assistant.interview.models import Answer, Candidate, InterviewStatus

HIGH_SCORE_THRESHOLD = 80
MEDIUM_SCORE_THRESHOLD = 60


def round_half_up(value: float) -> int:
    return int(math.floor(float(value) + 0.5))


def clamp_score(value, default: int = 0) -> int:
    try:
        return max(0, min(100, round_half_up(float(value))))
    except (TypeError, ValueError):
        return default


def calculate_final_score(answers: Iterable[Answer]) -> int:
    scores = [int(answer.score or 0) for answer in answers]
    if not scores:
        return 0
    return round_half_up(sum(scores) / len(scores))


def score_band(score: int) -> str:
    if score >= HIGH_SCORE_THRESHOLD:
        return "high"
    if score >= MEDIUM_SCORE_THRESHOLD:
        return "medium"
    return "low"


def score_distribution(candidates: Iterable[Candidate]) -> dict[str, int]:
    buckets = {"high": 0, "medium": 0, "low": 0}
    for candidate in candidates:
        if candidate.final_score is None:
            continue
        buckets[score_band(candidate.final_score)] += 1
    return buckets


def fleet_analytics(candidates: Iterable[Candidate]) -> dict:
    items = list(candidates)
    total = len(items)
    completed = sum(1 for c in items if c.interview_status == InterviewStatus.COMPLETED)
    in_progress = sum(1 for c in items if c.interview_status == InterviewStatus.IN_PROGRESS)

    scored = [c.final_score for c in items if (c.final_score or 0) > 0]
    average_score = round_half_up(sum(scored) / len(scored)) if scored else 0
    completion_rate = round_half_up(100 * completed / total) if total else 0

    return {
        "total_candidates": total,
        "completed_interviews": completed,
        "in_progress_interviews": in_progress,
        "not_started_interviews": total - completed - in_progress,
        "average_score": average_score,
        "completion_rate": completion_rate,
        "score_distribution": score_distribution(items),
    }

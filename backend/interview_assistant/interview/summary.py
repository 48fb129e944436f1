from dataclasses import dataclass

from interview_assistant.interview.models import Difficulty, Evaluation, Question
from interview_assistant.interview.scorer import round_half_up


@dataclass
class SummaryItem:
    question: Question
    answer: str
    evaluation: Evaluation


def _average(scores: list[int]) -> int:
    if not scores:
        return 0
    return round_half_up(sum(scores) / len(scores))


def _unique(values: list[str]) -> list[str]:
    seen: list[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def recommendation_for(score: int) -> str:
    if score >= 85:
        return "Excellent candidate - Strong hire recommendation"
    if score >= 70:
        return "Good candidate - Consider for next round"
    if score >= 50:
        return "Average candidate - May need additional training"
    return "Below expectations - Not recommended for this role"


def build_final_summary(candidate_name: str, items: list[SummaryItem]) -> str:
    average = _average([item.evaluation.score for item in items])

    by_difficulty = {
        difficulty: _average([i.evaluation.score for i in items if i.question.difficulty == difficulty])
        for difficulty in Difficulty
    }

    breakdown = "\n".join(
        f"- Question {index} ({item.question.difficulty.value.upper()}): "
        f"{item.evaluation.score}/100 - {item.question.category}"
        for index, item in enumerate(items, start=1)
    )
    strengths = _unique([s for item in items for s in item.evaluation.strengths])[:5]
    improvements = _unique([s for item in items for s in item.evaluation.improvements])[:5]
    assessment = "Meets technical requirements" if average >= 70 else "Needs technical skill development"

    lines = [
        f"**Interview Summary for {candidate_name}**",
        "",
        f"**Overall Score: {average}/100**",
        "",
        "**Performance by Difficulty:**",
        f"- Easy Questions: {by_difficulty[Difficulty.EASY]}/100",
        f"- Medium Questions: {by_difficulty[Difficulty.MEDIUM]}/100",
        f"- Hard Questions: {by_difficulty[Difficulty.HARD]}/100",
        "",
        "**Detailed Breakdown:**",
        breakdown or "- No answers recorded",
        "",
        "**Key Strengths:**",
        "\n".join(f"• {s}" for s in strengths) or "• None recorded",
        "",
        "**Areas for Improvement:**",
        "\n".join(f"• {s}" for s in improvements) or "• None recorded",
        "",
        f"**Final Recommendation:** {recommendation_for(average)}",
        "",
        f"**Technical Assessment:** {assessment}",
    ]
    return "\n".join(lines)

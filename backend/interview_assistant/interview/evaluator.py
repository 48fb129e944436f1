from dataclasses import dataclass

from interview_assistant.interview.models import Evaluation, Question
from interview_assistant.interview.scorer import clamp_score

MAX_NOTES = 3


@dataclass(frozen=True)
class KeywordRule:
    marker: str
    keywords: tuple[str, ...]
    weight: int
    strength_at: int
    improvement_below: int
    strength: str
    improvement: str


KEYWORD_RULES = (
    KeywordRule(
        marker="React",
        keywords=("component", "state", "props", "hook", "jsx", "virtual dom", "rendering"),
        weight=5,
        strength_at=3,
        improvement_below=2,
        strength="Good understanding of React concepts",
        improvement="Learn more React fundamentals",
    ),
    KeywordRule(
        marker="JavaScript",
        keywords=("variable", "scope", "hoisting", "closure", "async", "promise", "callback"),
        weight=5,
        strength_at=2,
        improvement_below=2,
        strength="Solid JavaScript knowledge",
        improvement="Strengthen JavaScript fundamentals",
    ),
    KeywordRule(
        marker="Node.js",
        keywords=("event loop", "asynchronous", "callback", "promise", "async/await", "non-blocking"),
        weight=8,
        strength_at=2,
        improvement_below=2,
        strength="Good understanding of Node.js concepts",
        improvement="Study Node.js asynchronous programming",
    ),
    KeywordRule(
        marker="System Design",
        keywords=("scalability", "database", "caching", "load balancing", "microservices", "api"),
        weight=10,
        strength_at=3,
        improvement_below=3,
        strength="Strong system design thinking",
        improvement="Study system design principles",
    ),
    KeywordRule(
        marker="Algorithm",
        keywords=("complexity", "time", "space", "optimization", "dynamic programming", "recursion"),
        weight=8,
        strength_at=2,
        improvement_below=2,
        strength="Good algorithmic thinking",
        improvement="Practice algorithmic problem solving",
    ),
)

# Extra points keyed by question id; most ids have no entry.
QUESTION_BONUSES: dict[str, tuple[tuple[str, int], ...]] = {
    "easy-1": (("virtual dom", 15), ("component", 10), ("reusable", 10), ("performance", 10)),
    "easy-2": (("block scope", 15), ("hoisting", 10), ("immutable", 10)),
    "medium-1": (("usestate", 10), ("validation", 15), ("error", 10), ("custom", 10)),
    "medium-2": (("call stack", 15), ("callback queue", 15), ("non-blocking", 10)),
    "hard-1": (("database", 15), ("caching", 15), ("websocket", 15), ("scaling", 15)),
    "hard-2": (("dynamic programming", 20), ("complexity", 15), ("memoization", 10)),
}


def _length_score(answer_length: int, strengths: list[str], improvements: list[str]) -> int:
    if answer_length < 50:
        improvements.append("Provide more detailed explanations")
        return 20
    if answer_length < 100:
        improvements.append("Elaborate more on key concepts")
        return 40
    if answer_length < 200:
        strengths.append("Good level of detail")
        return 60
    strengths.append("Comprehensive answer")
    return 80


def _keyword_score(category: str, answer_lower: str, strengths: list[str], improvements: list[str]) -> int:
    score = 0
    for rule in KEYWORD_RULES:
        if rule.marker not in category:
            continue
        found = [keyword for keyword in rule.keywords if keyword in answer_lower]
        score += len(found) * rule.weight
        if len(found) >= rule.strength_at:
            strengths.append(rule.strength)
        elif len(found) < rule.improvement_below:
            improvements.append(rule.improvement)
    return score


def _time_score(time_ratio: float, has_content: bool, strengths: list[str], improvements: list[str]) -> int:
    if time_ratio < 0.3:
        if not has_content:
            return 0
        strengths.append("Efficient time management")
        return 10
    if time_ratio > 0.9:
        improvements.append("Work on time management")
        return -5
    return 0


def _question_bonus(question_id: str, answer_lower: str) -> int:
    return sum(points for term, points in QUESTION_BONUSES.get(question_id, ()) if term in answer_lower)


def build_feedback(category: str, score: int, strengths: list[str], improvements: list[str]) -> str:
    if score >= 85:
        feedback = f"Excellent answer! You demonstrated strong understanding of {category}. "
    elif score >= 70:
        feedback = f"Good answer with solid knowledge of {category}. "
    elif score >= 50:
        feedback = f"Decent response, but could benefit from more depth in {category}. "
    else:
        feedback = f"Answer needs improvement in {category} fundamentals. "

    if strengths:
        feedback += f"Strengths: {', '.join(strengths)}. "
    if improvements:
        feedback += f"Areas to improve: {', '.join(improvements)}."

    return feedback.strip()


def evaluate_answer(question: Question, answer: str, time_spent: int) -> Evaluation:
    text = str(answer or "").strip()
    answer_lower = text.lower()
    time_ratio = max(0, int(time_spent or 0)) / question.time_limit

    strengths: list[str] = []
    improvements: list[str] = []

    score = _length_score(len(text), strengths, improvements)
    score += _keyword_score(question.category, answer_lower, strengths, improvements)
    score += _time_score(time_ratio, bool(text), strengths, improvements)
    score += _question_bonus(question.id, answer_lower)

    final_score = clamp_score(score)
    strengths = strengths[:MAX_NOTES]
    improvements = improvements[:MAX_NOTES]

    return Evaluation(
        score=final_score,
        feedback=build_feedback(question.category, final_score, strengths, improvements),
        strengths=strengths,
        improvements=improvements,
        source="rules",
    )

import pytest

from interview_assistant.interview.evaluator import build_feedback, evaluate_answer
from interview_assistant.interview.models import Difficulty, Question


def _question(question_id: str = "custom-1", category: str = "General Knowledge", difficulty=Difficulty.EASY, limit=30):
    return Question(question_id, "Explain something?", difficulty, category, limit)


@pytest.mark.parametrize("answer", ["", "   ", "x", "word " * 500, "ünïcödé ✓"])
@pytest.mark.parametrize("time_spent", [0, 1, 29, 30, 500])
def test_evaluate_is_total_and_bounded(answer: str, time_spent: int):
    result = evaluate_answer(_question(), answer, time_spent)
    assert 0 <= result.score <= 100
    assert result.feedback
    assert len(result.strengths) <= 3
    assert len(result.improvements) <= 3


def test_empty_answer_scores_low():
    result = evaluate_answer(_question(), "", 0)
    assert result.score <= 25
    assert "Efficient time management" not in result.strengths
    assert "Provide more detailed explanations" in result.improvements


def test_length_bands():
    question = _question()
    # mid-window time ratio keeps the time component at zero
    assert evaluate_answer(question, "a" * 49, 15).score == 20
    assert evaluate_answer(question, "a" * 50, 15).score == 40
    assert evaluate_answer(question, "a" * 100, 15).score == 60
    assert evaluate_answer(question, "a" * 200, 15).score == 80


def test_time_efficiency_and_slow_penalty():
    question = _question()
    text = "a" * 120

    fast = evaluate_answer(question, text, 5)
    assert fast.score == 70
    assert "Efficient time management" in fast.strengths

    slow = evaluate_answer(question, text, 28)
    assert slow.score == 55
    assert "Work on time management" in slow.improvements


def test_react_keywords_add_five_each():
    question = _question(category="React Hooks")
    answer = "component state props " + "x" * 60
    result = evaluate_answer(question, answer, 15)
    # length band 40 (<100 chars) + 3 keywords x 5
    assert result.score == 55
    assert "Good understanding of React concepts" in result.strengths


def test_system_design_keywords_weight_ten():
    question = _question(category="System Design & Scalability", difficulty=Difficulty.HARD, limit=120)
    answer = ("scalability database caching " + "y" * 200)
    result = evaluate_answer(question, answer, 60)
    assert result.score == 100
    assert "Strong system design thinking" in result.strengths


def test_missing_keywords_produce_improvement_note():
    question = _question(category="Algorithm Design")
    result = evaluate_answer(question, "b" * 120, 15)
    assert "Practice algorithmic problem solving" in result.improvements


def test_question_specific_bonus():
    plain = _question(question_id="easy-9", category="Web Security")
    bonus = _question(question_id="easy-1", category="Web Security")
    answer = "the virtual dom " + "z" * 40
    assert evaluate_answer(bonus, answer, 15).score - evaluate_answer(plain, answer, 15).score == 15


def test_score_is_clamped_to_hundred():
    question = _question(question_id="hard-1", category="System Design", difficulty=Difficulty.HARD, limit=120)
    answer = (
        "scalability database caching load balancing microservices api websocket scaling " * 4
    )
    result = evaluate_answer(question, answer, 1)
    assert result.score == 100
    assert result.feedback.startswith("Excellent answer!")


@pytest.mark.parametrize(
    "score,prefix",
    [(90, "Excellent answer!"), (75, "Good answer"), (55, "Decent response"), (10, "Answer needs improvement")],
)
def test_feedback_bands(score: int, prefix: str):
    feedback = build_feedback("React", score, ["A"], ["B"])
    assert feedback.startswith(prefix)
    assert "Strengths: A." in feedback
    assert feedback.endswith("Areas to improve: B.")

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class InterviewStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


STATUS_ORDER = {
    InterviewStatus.NOT_STARTED: 0,
    InterviewStatus.IN_PROGRESS: 1,
    InterviewStatus.COMPLETED: 2,
}

TIME_LIMITS = {
    Difficulty.EASY: 30,
    Difficulty.MEDIUM: 60,
    Difficulty.HARD: 120,
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Question:
    id: str
    text: str
    difficulty: Difficulty
    category: str
    time_limit: int
    expected_keywords: tuple[str, ...] = ()

    def __post_init__(self):
        if self.time_limit <= 0:
            raise ValueError(f"time_limit must be positive for question {self.id}")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "difficulty": self.difficulty.value,
            "category": self.category,
            "time_limit": self.time_limit,
            "expected_keywords": list(self.expected_keywords),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Question":
        difficulty = Difficulty(str(data.get("difficulty") or "medium").lower())
        return cls(
            id=str(data.get("id") or ""),
            text=str(data.get("text") or ""),
            difficulty=difficulty,
            category=str(data.get("category") or "General"),
            time_limit=int(data.get("time_limit") or TIME_LIMITS[difficulty]),
            expected_keywords=tuple(str(k) for k in (data.get("expected_keywords") or [])),
        )


@dataclass
class Evaluation:
    score: int
    feedback: str
    strengths: list[str] = field(default_factory=list)
    improvements: list[str] = field(default_factory=list)
    source: str = "rules"

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Answer:
    question_id: str
    question: str
    answer: str
    difficulty: Difficulty
    time_spent: int = 0
    score: int | None = None
    feedback: str = ""
    strengths: list[str] = field(default_factory=list)
    improvements: list[str] = field(default_factory=list)
    created_at: str = field(default_factory=utc_now_iso)

    def __post_init__(self):
        if self.time_spent < 0:
            raise ValueError("time_spent must be non-negative")
        if self.score is not None and not 0 <= self.score <= 100:
            raise ValueError("score must be within 0-100")

    @classmethod
    def from_evaluation(cls, question: Question, answer_text: str, time_spent: int, evaluation: Evaluation) -> "Answer":
        return cls(
            question_id=question.id,
            question=question.text,
            answer=answer_text,
            difficulty=question.difficulty,
            time_spent=int(time_spent),
            score=evaluation.score,
            feedback=evaluation.feedback,
            strengths=list(evaluation.strengths),
            improvements=list(evaluation.improvements),
        )

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["difficulty"] = self.difficulty.value
        return payload

    @classmethod
    def from_dict(cls, data: dict) -> "Answer":
        score = data.get("score")
        return cls(
            question_id=str(data.get("question_id") or ""),
            question=str(data.get("question") or ""),
            answer=str(data.get("answer") or ""),
            difficulty=Difficulty(str(data.get("difficulty") or "medium").lower()),
            time_spent=max(0, int(data.get("time_spent") or 0)),
            score=None if score is None else int(score),
            feedback=str(data.get("feedback") or ""),
            strengths=[str(s) for s in (data.get("strengths") or [])],
            improvements=[str(s) for s in (data.get("improvements") or [])],
            created_at=str(data.get("created_at") or utc_now_iso()),
        )


@dataclass
class Candidate:
    id: str
    name: str
    email: str
    phone: str = ""
    resume_text: str = ""
    interview_status: InterviewStatus = InterviewStatus.NOT_STARTED
    current_question_index: int = 0
    answers: list[Answer] = field(default_factory=list)
    final_score: int | None = None
    summary: str = ""
    created_at: str = field(default_factory=utc_now_iso)
    last_active_at: str = field(default_factory=utc_now_iso)

    def find_answer(self, question_id: str) -> Answer | None:
        return next((a for a in self.answers if a.question_id == question_id), None)

    def missing_contact_fields(self) -> list[str]:
        return [name for name in ("name", "email", "phone") if not str(getattr(self, name) or "").strip()]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "resume_text": self.resume_text,
            "interview_status": self.interview_status.value,
            "current_question_index": self.current_question_index,
            "answers": [a.to_dict() for a in self.answers],
            "final_score": self.final_score,
            "summary": self.summary,
            "created_at": self.created_at,
            "last_active_at": self.last_active_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Candidate":
        final_score = data.get("final_score")
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            email=str(data.get("email") or ""),
            phone=str(data.get("phone") or ""),
            resume_text=str(data.get("resume_text") or ""),
            interview_status=InterviewStatus(str(data.get("interview_status") or "not_started")),
            current_question_index=max(0, int(data.get("current_question_index") or 0)),
            answers=[Answer.from_dict(a) for a in (data.get("answers") or []) if isinstance(a, dict)],
            final_score=None if final_score is None else int(final_score),
            summary=str(data.get("summary") or ""),
            created_at=str(data.get("created_at") or utc_now_iso()),
            last_active_at=str(data.get("last_active_at") or utc_now_iso()),
        )

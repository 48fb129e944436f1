from __future__ import annotations

import uuid
from typing import Callable

from interview_assistant.errors import InsufficientQuestions, InvalidTransition
from interview_assistant.interview.models import InterviewStatus, Question, utc_now_iso
from interview_assistant.interview.questions import QUESTIONS_PER_INTERVIEW
from interview_assistant.interview.timer import CountdownTimer

EventFn = Callable[[dict], None]


class InterviewSession:
    """
    One candidate's attempt at the fixed question sequence.

    States: not_started -> in_progress -> completed, with an orthogonal paused flag.
    The session never touches the candidate record; it reports transitions through on_event.
    """

    def __init__(
        self,
        candidate_id: str,
        questions: list[Question],
        session_id: str | None = None,
        on_event: EventFn | None = None,
    ):
        if len(questions) != QUESTIONS_PER_INTERVIEW:
            raise InsufficientQuestions(
                f"an interview needs {QUESTIONS_PER_INTERVIEW} questions, got {len(questions)}"
            )
        self.id: str = session_id or str(uuid.uuid4())
        self.candidate_id: str = candidate_id
        self.questions: tuple[Question, ...] = tuple(questions)

        self.current_question_index: int = 0
        self.is_active: bool = False
        self.is_paused: bool = False
        self.start_time: str | None = None
        self.end_time: str | None = None
        self.time_spent_by_question: dict[str, int] = {}

        self.timer: CountdownTimer | None = None
        self.on_event = on_event

    # -------------------------
    # DERIVED STATE
    # -------------------------

    @property
    def status(self) -> InterviewStatus:
        if self.end_time is not None:
            return InterviewStatus.COMPLETED
        if self.start_time is not None:
            return InterviewStatus.IN_PROGRESS
        return InterviewStatus.NOT_STARTED

    @property
    def current_question(self) -> Question:
        return self.questions[self.current_question_index]

    @property
    def is_last_question(self) -> bool:
        return self.current_question_index == len(self.questions) - 1

    @property
    def total_time_spent(self) -> int:
        return sum(self.time_spent_by_question.values())

    def question_by_id(self, question_id: str) -> Question | None:
        return next((q for q in self.questions if q.id == question_id), None)

    def is_answered(self, question_id: str) -> bool:
        return question_id in self.time_spent_by_question

    # -------------------------
    # TRANSITIONS
    # -------------------------

    def start(self, now: str | None = None) -> Question:
        if self.status != InterviewStatus.NOT_STARTED:
            raise InvalidTransition(f"session {self.id} already started")
        self.current_question_index = 0
        self.is_active = True
        self.is_paused = False
        self.start_time = now or utc_now_iso()
        self._arm_timer()
        self._emit("question", reason="start", **self._question_payload())
        return self.current_question

    def advance(self, reason: str = "answered") -> Question:
        self._require_open()
        if not self.is_active:
            raise InvalidTransition("cannot advance an inactive session")
        if self.is_paused:
            raise InvalidTransition("cannot advance a paused session")
        if self.is_last_question:
            raise InvalidTransition("already at the last question")

        if self.timer is not None:
            self.timer.cancel()
        self.current_question_index += 1
        self._arm_timer()
        self._emit("question", reason=reason, **self._question_payload())
        return self.current_question

    def pause(self) -> None:
        self._require_open()
        if not self.is_active:
            raise InvalidTransition("cannot pause an inactive session")
        if self.is_paused:
            raise InvalidTransition("session is already paused")
        self.is_paused = True
        if self.timer is not None:
            self.timer.pause()
        self._emit("paused", timer=self.timer_state())

    def resume(self) -> None:
        self._require_open()
        if not self.is_active or not self.is_paused:
            raise InvalidTransition("session was not paused")
        self.is_paused = False
        if self.timer is not None:
            self.timer.resume()
        self._emit("resumed", timer=self.timer_state())

    def hold_timer(self) -> int:
        """Stop ticking before an answer is scored. Returns seconds spent on the current question."""
        if self.timer is None:
            return 0
        self.timer.pause()
        return self.timer.elapsed

    def release_timer(self) -> None:
        if self.timer is not None and self.is_active and not self.is_paused:
            self.timer.resume()

    def record_answer(self, question_id: str, time_spent: int) -> None:
        self._require_open()
        if self.question_by_id(question_id) is None:
            raise InvalidTransition(f"question {question_id} is not part of session {self.id}")
        self.time_spent_by_question[question_id] = max(0, int(time_spent))

    def complete(self, now: str | None = None) -> None:
        self._require_open()
        if not self.is_active:
            raise InvalidTransition("cannot complete an inactive session")
        if not self.is_last_question:
            raise InvalidTransition("cannot complete before the last question")
        if not self.is_answered(self.current_question.id):
            raise InvalidTransition("the last question has not been answered")

        if self.timer is not None:
            self.timer.cancel()
        self.is_active = False
        self.is_paused = False
        self.end_time = now or utc_now_iso()
        self._emit("completed", end_time=self.end_time, total_time_spent=self.total_time_spent)

    def close(self, now: str | None = None) -> None:
        """Stop the session without completing it (explicit reset)."""
        if self.timer is not None:
            self.timer.cancel()
        self.is_active = False
        self.is_paused = False
        if self.end_time is None:
            self.end_time = now or utc_now_iso()

    # -------------------------
    # TIMER
    # -------------------------

    def tick(self) -> int | None:
        if not self.is_active or self.is_paused or self.timer is None:
            return None
        timer = self.timer
        remaining = timer.tick()
        if not timer.expired:
            self._emit("tick", question_id=timer.question_id, time_remaining=remaining)
        return remaining

    def timer_state(self) -> dict:
        if self.timer is None:
            return {"is_active": False, "time_remaining": 0, "question_id": None}
        return self.timer.to_dict()

    def _arm_timer(self) -> None:
        question = self.current_question
        self.timer = CountdownTimer(question.id, question.time_limit, on_expire=self._on_timer_expired)

    def _on_timer_expired(self, question_id: str) -> None:
        self._emit("time_expired", question_id=question_id)
        if self.current_question.id == question_id and not self.is_last_question:
            self.advance(reason="timeout")

    # -------------------------
    # HELPERS
    # -------------------------

    def _require_open(self) -> None:
        if self.end_time is not None:
            raise InvalidTransition(f"session {self.id} is closed")

    def _question_payload(self) -> dict:
        return {
            "question": self.current_question.to_dict(),
            "index": self.current_question_index,
            "total": len(self.questions),
        }

    def _emit(self, event_type: str, **fields) -> None:
        if self.on_event is None:
            return
        payload = {
            "type": event_type,
            "session_id": self.id,
            "candidate_id": self.candidate_id,
        }
        payload.update(fields)
        self.on_event(payload)

    # -------------------------
    # SNAPSHOT
    # -------------------------

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "candidate_id": self.candidate_id,
            "questions": [q.to_dict() for q in self.questions],
            "current_question_index": self.current_question_index,
            "is_active": self.is_active,
            "is_paused": self.is_paused,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "total_time_spent": self.total_time_spent,
            "time_spent_by_question": dict(self.time_spent_by_question),
            "timer": self.timer_state(),
        }

    @classmethod
    def from_dict(cls, data: dict, on_event: EventFn | None = None) -> "InterviewSession":
        questions = [Question.from_dict(q) for q in (data.get("questions") or [])]
        session = cls(
            candidate_id=str(data.get("candidate_id") or ""),
            questions=questions,
            session_id=str(data.get("id") or "") or None,
            on_event=on_event,
        )
        index = int(data.get("current_question_index") or 0)
        session.current_question_index = max(0, min(index, len(questions) - 1))
        session.is_active = bool(data.get("is_active", False))
        session.is_paused = bool(data.get("is_paused", False)) and session.is_active
        session.start_time = data.get("start_time")
        session.end_time = data.get("end_time")
        session.time_spent_by_question = {
            str(k): max(0, int(v or 0)) for k, v in (data.get("time_spent_by_question") or {}).items()
        }
        if session.is_active:
            # Timers are not persisted; a restored session restarts the current question's countdown.
            session._arm_timer()
            if session.is_paused:
                session.timer.pause()
        return session

from __future__ import annotations

import asyncio
import logging
import random
import time

from core.logger import log_event
from interview_assistant.ai.remote import RemoteInterviewAI
from interview_assistant.errors import (
    EvaluationUnavailable,
    InvalidTransition,
    NotFoundError,
    SessionAlreadyActive,
    ValidationError,
)
from interview_assistant.interview.evaluator import evaluate_answer
from interview_assistant.interview.models import Answer, Candidate, Evaluation, InterviewStatus, Question
from interview_assistant.interview.questions import DIFFICULTY_ORDER, QUESTIONS_PER_DIFFICULTY, select_questions
from interview_assistant.interview.session import InterviewSession
from interview_assistant.interview.summary import SummaryItem, build_final_summary
from interview_assistant.store.candidates import CandidateStore
from interview_assistant.system_metrics import increment_metric, observe_evaluation_latency_ms

logger = logging.getLogger("interview_assistant.interview.engine")

SUBSCRIBER_QUEUE_SIZE = 256


class InterviewEngine:
    """
    Runs one interview session per candidate on top of the candidate store.

    Remote AI is optional; when it is missing or fails, questions come from the static bank
    and answers are scored by the rule-based evaluator.
    """

    def __init__(
        self,
        store: CandidateStore,
        remote_ai: RemoteInterviewAI | None = None,
        tick_interval: float = 1.0,
        auto_tick: bool = True,
        rng: random.Random | None = None,
    ):
        self.store = store
        self.remote_ai = remote_ai
        self.tick_interval = max(0.01, float(tick_interval))
        self.auto_tick = bool(auto_tick)
        self.rng = rng

        self._sessions: dict[str, InterviewSession] = {}
        self._starting: set[str] = set()
        self._pending: dict[str, set[str]] = {}
        self._tickers: dict[str, asyncio.Task] = {}
        self._subscribers: dict[str, set[asyncio.Queue]] = {}

    # -------------------------
    # LIFECYCLE
    # -------------------------

    def restore_sessions(self) -> int:
        """Rebuild in-memory sessions from the store's session records, replacing any held now."""
        for candidate_id in list(self._tickers):
            self._stop_ticker(candidate_id)
        self._sessions = {}
        self._pending = {}

        restored = 0
        for record in self.store.list_session_records():
            candidate_id = str(record.get("candidate_id") or "")
            try:
                session = InterviewSession.from_dict(record, on_event=self._on_session_event)
            except Exception as exc:
                logger.warning("skipping unrestorable session for candidate=%s: %s", candidate_id, exc)
                continue
            self._sessions[candidate_id] = session
            self._pending[candidate_id] = set()
            if session.is_active:
                self._start_ticker(candidate_id)
            restored += 1
        if restored:
            logger.info("restored interview sessions=%s", restored)
        return restored

    async def shutdown(self) -> None:
        tickers = list(self._tickers.values())
        self._tickers.clear()
        for task in tickers:
            task.cancel()
        for task in tickers:
            try:
                await task
            except asyncio.CancelledError:
                pass
        for session in self._sessions.values():
            self.store.save_session(session.to_dict())
        self.store.flush()

    # -------------------------
    # SESSION ACCESS
    # -------------------------

    def get_session(self, candidate_id: str) -> InterviewSession:
        session = self._sessions.get(candidate_id)
        if session is None:
            raise NotFoundError("Interview session not found")
        return session

    def session_state(self, candidate_id: str) -> dict:
        session = self.get_session(candidate_id)
        payload = session.to_dict()
        payload["status"] = session.status.value
        payload["current_question"] = session.current_question.to_dict() if session.is_active else None
        payload["evaluation_pending"] = bool(self._pending.get(candidate_id))
        return payload

    # -------------------------
    # TRANSITIONS
    # -------------------------

    async def start_interview(self, candidate_id: str) -> InterviewSession:
        candidate = self.store.get(candidate_id)
        self._ensure_no_active_session(candidate_id)
        if candidate.interview_status != InterviewStatus.NOT_STARTED:
            raise InvalidTransition(f"interview is already {candidate.interview_status.value}")
        missing = candidate.missing_contact_fields()
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)

        self._starting.add(candidate_id)
        try:
            questions = await self._select_questions(candidate)
        finally:
            self._starting.discard(candidate_id)
        self._ensure_no_active_session(candidate_id)

        session = InterviewSession(candidate_id, questions, on_event=self._on_session_event)
        self._sessions[candidate_id] = session
        self._pending[candidate_id] = set()
        self.store.update(candidate_id, {"interview_status": InterviewStatus.IN_PROGRESS.value})
        session.start()
        self._save(session)
        self._start_ticker(candidate_id)

        increment_metric("sessions_started")
        log_event(
            "interview",
            "started",
            session.id,
            candidate_id=candidate_id,
            question_ids=[q.id for q in session.questions],
        )
        return session

    async def submit_answer(
        self,
        candidate_id: str,
        answer_text: str,
        time_spent: int | None = None,
        question_id: str | None = None,
    ) -> dict:
        session = self.get_session(candidate_id)
        if session.status == InterviewStatus.COMPLETED:
            raise InvalidTransition("interview already completed")
        if session.is_paused:
            raise InvalidTransition("resume the interview before answering")

        question = session.current_question if question_id is None else session.question_by_id(question_id)
        if question is None:
            raise NotFoundError("Question not found in this interview")
        is_current = question.id == session.current_question.id
        if not is_current and not session.is_answered(question.id):
            raise InvalidTransition("only the current question or an answered one can be submitted")

        pending = self._pending.setdefault(candidate_id, set())
        if question.id in pending:
            raise InvalidTransition("an evaluation for this question is already in progress")
        pending.add(question.id)

        if is_current:
            elapsed = session.hold_timer()
        else:
            elapsed = session.time_spent_by_question.get(question.id, 0)
        spent = elapsed if time_spent is None else max(0, int(time_spent))
        text = str(answer_text or "")

        try:
            evaluation = await self._evaluate(question, text, spent)
        except BaseException:
            if is_current:
                session.release_timer()
            raise
        finally:
            pending.discard(question.id)

        if self._sessions.get(candidate_id) is not session or session.end_time is not None:
            raise InvalidTransition("interview was reset while the answer was being scored")

        answer = Answer.from_evaluation(question, text, spent, evaluation)
        self.store.append_answer(candidate_id, answer)
        session.record_answer(question.id, spent)
        increment_metric("answers_evaluated")
        self._publish(candidate_id, {
            "type": "answer_scored",
            "session_id": session.id,
            "candidate_id": candidate_id,
            "question_id": question.id,
            "score": evaluation.score,
        })
        log_event(
            "interview",
            "answer_scored",
            session.id,
            candidate_id=candidate_id,
            question_id=question.id,
            score=evaluation.score,
            source=evaluation.source,
            answer=text,
        )

        next_question: Question | None = None
        completed = False
        if is_current:
            if session.is_last_question:
                session.complete()
                self._stop_ticker(candidate_id)
                await self._finish(candidate_id, session)
                completed = True
            else:
                next_question = session.advance(reason="answered")
        self._save(session)

        return {
            "evaluation": evaluation.to_dict(),
            "answer": answer.to_dict(),
            "candidate": self.store.get(candidate_id).to_dict(),
            "next_question": next_question.to_dict() if next_question else None,
            "timer": session.timer_state(),
            "completed": completed,
        }

    def pause(self, candidate_id: str) -> InterviewSession:
        session = self.get_session(candidate_id)
        self._ensure_not_scoring(candidate_id)
        session.pause()
        self._save(session)
        return session

    def resume(self, candidate_id: str) -> InterviewSession:
        session = self.get_session(candidate_id)
        self._ensure_not_scoring(candidate_id)
        session.resume()
        self._save(session)
        return session

    def tick(self, candidate_id: str) -> int | None:
        session = self._sessions.get(candidate_id)
        if session is None:
            return None
        return session.tick()

    def reset_interview(self, candidate_id: str) -> Candidate:
        session = self._sessions.pop(candidate_id, None)
        if session is not None:
            session.close()
        self._stop_ticker(candidate_id)
        self._pending.pop(candidate_id, None)
        candidate = self.store.reset_candidate(candidate_id)

        increment_metric("sessions_reset")
        log_event("interview", "reset", session.id if session else "", candidate_id=candidate_id)
        self._publish(candidate_id, {"type": "reset", "candidate_id": candidate_id})
        return candidate

    def clear(self) -> None:
        """Drop every session and candidate."""
        for candidate_id, session in list(self._sessions.items()):
            session.close()
            self._stop_ticker(candidate_id)
            self._publish(candidate_id, {"type": "reset", "candidate_id": candidate_id})
        self._sessions = {}
        self._pending = {}
        self.store.clear()
        log_event("interview", "cleared", "")

    # -------------------------
    # EVENT FEED
    # -------------------------

    def subscribe(self, candidate_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=SUBSCRIBER_QUEUE_SIZE)
        self._subscribers.setdefault(candidate_id, set()).add(queue)
        return queue

    def unsubscribe(self, candidate_id: str, queue: asyncio.Queue) -> None:
        members = self._subscribers.get(candidate_id)
        if not members:
            return
        members.discard(queue)
        if not members:
            self._subscribers.pop(candidate_id, None)

    def _publish(self, candidate_id: str, event: dict) -> None:
        for queue in list(self._subscribers.get(candidate_id, ())):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("dropping %s event for slow subscriber candidate=%s", event.get("type"), candidate_id)

    def _on_session_event(self, event: dict) -> None:
        candidate_id = str(event.get("candidate_id") or "")
        event_type = event.get("type")

        if event_type == "question":
            self.store.update(candidate_id, {"current_question_index": int(event.get("index") or 0)})
            if event.get("reason") == "timeout":
                increment_metric("auto_advances")
                session = self._sessions.get(candidate_id)
                if session is not None:
                    self._save(session)
        elif event_type == "time_expired":
            increment_metric("timers_expired")
            log_event("interview", "time_expired", event.get("session_id"), question_id=event.get("question_id"))
        elif event_type == "completed":
            # The session only reports completion; the candidate record is updated here.
            self.store.update(candidate_id, {"interview_status": InterviewStatus.COMPLETED.value})
            increment_metric("sessions_completed")

        self._publish(candidate_id, event)

    # -------------------------
    # COLLABORATORS
    # -------------------------

    async def _select_questions(self, candidate: Candidate) -> list[Question]:
        if self.remote_ai is not None:
            try:
                questions: list[Question] = []
                for difficulty in DIFFICULTY_ORDER:
                    questions.extend(
                        await self.remote_ai.generate_questions(
                            difficulty,
                            count=QUESTIONS_PER_DIFFICULTY,
                            candidate_name=candidate.name,
                        )
                    )
                return questions
            except EvaluationUnavailable as exc:
                increment_metric("remote_fallbacks")
                logger.warning("remote question generation unavailable, using question bank: %s", exc)
        return select_questions(rng=self.rng)

    async def _evaluate(self, question: Question, answer: str, time_spent: int) -> Evaluation:
        started = time.perf_counter()
        try:
            if self.remote_ai is not None:
                try:
                    evaluation = await self.remote_ai.evaluate(question, answer, time_spent)
                    increment_metric("remote_evaluations")
                    return evaluation
                except EvaluationUnavailable as exc:
                    increment_metric("remote_fallbacks")
                    logger.warning("remote evaluation unavailable, using rule-based scoring: %s", exc)
            return evaluate_answer(question, answer, time_spent)
        finally:
            observe_evaluation_latency_ms((time.perf_counter() - started) * 1000.0)

    async def _finish(self, candidate_id: str, session: InterviewSession) -> None:
        candidate = self.store.get(candidate_id)
        items: list[SummaryItem] = []
        for question in session.questions:
            answer = candidate.find_answer(question.id)
            if answer is None:
                continue
            items.append(
                SummaryItem(
                    question=question,
                    answer=answer.answer,
                    evaluation=Evaluation(
                        score=int(answer.score or 0),
                        feedback=answer.feedback,
                        strengths=list(answer.strengths),
                        improvements=list(answer.improvements),
                    ),
                )
            )

        summary = ""
        if self.remote_ai is not None:
            try:
                summary = await self.remote_ai.summarize(candidate.name, items)
            except EvaluationUnavailable as exc:
                increment_metric("remote_fallbacks")
                logger.warning("remote summary unavailable, using rule-based summary: %s", exc)
        if not summary:
            summary = build_final_summary(candidate.name, items)

        updated = self.store.update(candidate_id, {"summary": summary})
        log_event(
            "interview",
            "completed",
            session.id,
            candidate_id=candidate_id,
            final_score=updated.final_score,
            total_time_spent=session.total_time_spent,
            summary=summary,
        )

    # -------------------------
    # TIMER DRIVER
    # -------------------------

    def _start_ticker(self, candidate_id: str) -> None:
        if not self.auto_tick:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("no running event loop; timer for candidate=%s will not auto-tick", candidate_id)
            return
        self._stop_ticker(candidate_id)
        self._tickers[candidate_id] = loop.create_task(self._run_ticker(candidate_id))

    def _stop_ticker(self, candidate_id: str) -> None:
        task = self._tickers.pop(candidate_id, None)
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()

    async def _run_ticker(self, candidate_id: str) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            session = self._sessions.get(candidate_id)
            if session is None or not session.is_active:
                break
            try:
                session.tick()
            except Exception:
                logger.exception("timer tick failed for candidate=%s", candidate_id)
                break
        self._tickers.pop(candidate_id, None)

    # -------------------------
    # HELPERS
    # -------------------------

    def _ensure_no_active_session(self, candidate_id: str) -> None:
        existing = self._sessions.get(candidate_id)
        if candidate_id in self._starting or (existing is not None and existing.is_active):
            raise SessionAlreadyActive("candidate already has an active interview session")

    def _ensure_not_scoring(self, candidate_id: str) -> None:
        if self._pending.get(candidate_id):
            raise InvalidTransition("an answer is being scored")

    def _save(self, session: InterviewSession) -> None:
        self.store.save_session(session.to_dict())

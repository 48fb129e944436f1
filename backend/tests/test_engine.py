import asyncio
import json
import random

import pytest

from interview_assistant.ai.remote import EVALUATION_SYSTEM_PROMPT, QUESTION_SYSTEM_PROMPT, RemoteInterviewAI
from interview_assistant.errors import (
    EvaluationUnavailable,
    InvalidTransition,
    NotFoundError,
    SessionAlreadyActive,
    ValidationError,
)
from interview_assistant.interview.engine import InterviewEngine
from interview_assistant.interview.models import Evaluation, InterviewStatus
from interview_assistant.system_metrics import get_metrics_snapshot


@pytest.fixture
def engine(store):
    return InterviewEngine(store, auto_tick=False, rng=random.Random(3))


class FailingProvider:
    name = "broken"

    def __init__(self):
        self.calls = 0

    async def complete(self, system, prompt, temperature=0.4, max_tokens=1000):
        self.calls += 1
        raise EvaluationUnavailable("provider down")


class ScriptedProvider:
    name = "scripted"

    async def complete(self, system, prompt, temperature=0.4, max_tokens=1000):
        if system == QUESTION_SYSTEM_PROMPT:
            difficulty = "easy" if "easy level" in prompt else "medium" if "medium level" in prompt else "hard"
            return "```json\n" + json.dumps([
                {"text": f"{difficulty} question {i}?", "category": f"Topic {i}", "expected_keywords": ["a"]}
                for i in range(2)
            ]) + "\n```"
        if system == EVALUATION_SYSTEM_PROMPT:
            return 'Here you go: {"score": 88, "feedback": "Solid.", "strengths": ["Clear"], "improvements": []}'
        return "Remote summary text."


class GatedRemote:
    """Holds evaluation open until the test releases it."""

    name = "gated"

    def __init__(self):
        self.gate = asyncio.Event()
        self.started = asyncio.Event()

    async def generate_questions(self, difficulty, count=2, candidate_name=None):
        raise EvaluationUnavailable("no remote questions")

    async def evaluate(self, question, answer, time_spent):
        self.started.set()
        await self.gate.wait()
        return Evaluation(score=50, feedback="gated", source=self.name)

    async def summarize(self, candidate_name, items):
        raise EvaluationUnavailable("no remote summary")


async def _answer_all(engine, candidate_id, text, time_spent=5):
    result = None
    for _ in range(6):
        result = await engine.submit_answer(candidate_id, text, time_spent=time_spent)
    return result


@pytest.mark.asyncio
async def test_full_interview_completes_with_high_score(engine, store, long_answer):
    ann = store.create(name="Ann", email="a@x.com", phone="+91 9876543210")
    statuses = [store.get(ann.id).interview_status]

    await engine.start_interview(ann.id)
    statuses.append(store.get(ann.id).interview_status)

    result = await _answer_all(engine, ann.id, long_answer)
    candidate = store.get(ann.id)
    statuses.append(candidate.interview_status)

    assert statuses == [InterviewStatus.NOT_STARTED, InterviewStatus.IN_PROGRESS, InterviewStatus.COMPLETED]
    assert result["completed"] is True
    assert result["next_question"] is None
    assert len(candidate.answers) == 6
    assert candidate.final_score >= 80
    assert "Interview Summary for Ann" in candidate.summary
    assert engine.get_session(ann.id).status == InterviewStatus.COMPLETED

    metrics = get_metrics_snapshot()
    assert metrics["sessions_started"] == 1
    assert metrics["sessions_completed"] == 1
    assert metrics["answers_evaluated"] == 6


@pytest.mark.asyncio
async def test_submit_advances_and_tracks_index(engine, store, make_candidate, long_answer):
    candidate = make_candidate()
    session = await engine.start_interview(candidate.id)
    first = session.current_question

    result = await engine.submit_answer(candidate.id, long_answer, time_spent=4)

    assert result["answer"]["question_id"] == first.id
    assert result["next_question"]["id"] == session.questions[1].id
    assert store.get(candidate.id).current_question_index == 1
    assert store.get_session_record(candidate.id)["current_question_index"] == 1


@pytest.mark.asyncio
async def test_time_spent_defaults_to_timer_elapsed(engine, make_candidate):
    candidate = make_candidate()
    await engine.start_interview(candidate.id)
    for _ in range(7):
        engine.tick(candidate.id)

    result = await engine.submit_answer(candidate.id, "short")

    assert result["answer"]["time_spent"] == 7


@pytest.mark.asyncio
async def test_timer_expiry_auto_advances(engine, store, make_candidate):
    candidate = make_candidate()
    session = await engine.start_interview(candidate.id)
    limit = session.current_question.time_limit

    for _ in range(limit):
        engine.tick(candidate.id)

    assert session.current_question_index == 1
    assert session.timer_state()["time_remaining"] == session.current_question.time_limit
    assert store.get(candidate.id).current_question_index == 1
    metrics = get_metrics_snapshot()
    assert metrics["timers_expired"] == 1
    assert metrics["auto_advances"] == 1


@pytest.mark.asyncio
async def test_resubmitting_earlier_question_upserts(engine, store, make_candidate, long_answer):
    candidate = make_candidate()
    session = await engine.start_interview(candidate.id)
    first = session.current_question

    await engine.submit_answer(candidate.id, "tiny", time_spent=3)
    before = store.get(candidate.id).final_score

    await engine.submit_answer(candidate.id, long_answer, time_spent=3, question_id=first.id)
    after = store.get(candidate.id)

    assert session.current_question_index == 1
    assert len(after.answers) == 1
    assert after.final_score > before


@pytest.mark.asyncio
async def test_unanswered_earlier_question_cannot_be_submitted(engine, make_candidate):
    candidate = make_candidate()
    session = await engine.start_interview(candidate.id)
    skipped = session.current_question
    for _ in range(skipped.time_limit):
        engine.tick(candidate.id)

    with pytest.raises(InvalidTransition):
        await engine.submit_answer(candidate.id, "late", question_id=skipped.id)


@pytest.mark.asyncio
async def test_submit_after_completion_is_rejected(engine, make_candidate, long_answer):
    candidate = make_candidate()
    await engine.start_interview(candidate.id)
    await _answer_all(engine, candidate.id, long_answer)

    with pytest.raises(InvalidTransition):
        await engine.submit_answer(candidate.id, long_answer)


@pytest.mark.asyncio
async def test_second_start_is_rejected(engine, make_candidate):
    candidate = make_candidate()
    await engine.start_interview(candidate.id)
    with pytest.raises(SessionAlreadyActive):
        await engine.start_interview(candidate.id)


@pytest.mark.asyncio
async def test_start_requires_contact_fields(engine, make_candidate):
    candidate = make_candidate(phone="")
    with pytest.raises(ValidationError) as exc_info:
        await engine.start_interview(candidate.id)
    assert exc_info.value.fields == ["phone"]


@pytest.mark.asyncio
async def test_start_unknown_candidate(engine):
    with pytest.raises(NotFoundError):
        await engine.start_interview("nobody")


@pytest.mark.asyncio
async def test_pending_evaluation_blocks_duplicate_and_holds_timer(store, make_candidate):
    remote = GatedRemote()
    engine = InterviewEngine(store, remote_ai=remote, auto_tick=False, rng=random.Random(3))
    candidate = make_candidate()
    session = await engine.start_interview(candidate.id)
    engine.tick(candidate.id)

    first = asyncio.create_task(engine.submit_answer(candidate.id, "answer one"))
    await remote.started.wait()

    remaining = session.timer_state()["time_remaining"]
    for _ in range(5):
        engine.tick(candidate.id)
    assert session.timer_state()["time_remaining"] == remaining

    with pytest.raises(InvalidTransition):
        await engine.submit_answer(candidate.id, "answer again")
    with pytest.raises(InvalidTransition):
        engine.pause(candidate.id)

    remote.gate.set()
    result = await first

    assert result["evaluation"]["source"] == "gated"
    assert result["answer"]["time_spent"] == 1
    assert session.current_question_index == 1


@pytest.mark.asyncio
async def test_remote_failure_falls_back_to_rules(store, make_candidate, long_answer):
    provider = FailingProvider()
    engine = InterviewEngine(store, remote_ai=RemoteInterviewAI(provider), auto_tick=False, rng=random.Random(3))
    candidate = make_candidate()

    session = await engine.start_interview(candidate.id)
    assert all(not q.id.startswith(f"{q.difficulty.value}-ai-") for q in session.questions)

    result = await engine.submit_answer(candidate.id, long_answer, time_spent=5)

    assert result["evaluation"]["source"] == "rules"
    assert provider.calls >= 2
    assert get_metrics_snapshot()["remote_fallbacks"] >= 2


@pytest.mark.asyncio
async def test_remote_provider_drives_questions_scores_and_summary(store, make_candidate):
    engine = InterviewEngine(store, remote_ai=RemoteInterviewAI(ScriptedProvider()), auto_tick=False)
    candidate = make_candidate()

    session = await engine.start_interview(candidate.id)
    assert [q.difficulty.value for q in session.questions] == ["easy", "easy", "medium", "medium", "hard", "hard"]
    assert session.questions[0].text == "easy question 0?"

    result = await _answer_all(engine, candidate.id, "anything")

    assert result["evaluation"]["score"] == 88
    assert result["evaluation"]["source"] == "scripted"
    final = store.get(candidate.id)
    assert final.final_score == 88
    assert final.summary == "Remote summary text."
    assert get_metrics_snapshot()["remote_evaluations"] == 6


@pytest.mark.asyncio
async def test_pause_resume_through_engine(engine, make_candidate):
    candidate = make_candidate()
    session = await engine.start_interview(candidate.id)
    engine.tick(candidate.id)

    engine.pause(candidate.id)
    engine.tick(candidate.id)
    assert session.timer.elapsed == 1

    with pytest.raises(InvalidTransition):
        await engine.submit_answer(candidate.id, "while paused")

    engine.resume(candidate.id)
    engine.tick(candidate.id)
    assert session.timer.elapsed == 2


@pytest.mark.asyncio
async def test_reset_allows_a_fresh_start(engine, store, make_candidate, long_answer):
    candidate = make_candidate()
    await engine.start_interview(candidate.id)
    await engine.submit_answer(candidate.id, long_answer, time_spent=3)

    reset = engine.reset_interview(candidate.id)
    assert reset.interview_status == InterviewStatus.NOT_STARTED
    assert reset.answers == []
    with pytest.raises(NotFoundError):
        engine.get_session(candidate.id)

    session = await engine.start_interview(candidate.id)
    assert session.current_question_index == 0


@pytest.mark.asyncio
async def test_subscribers_receive_events(engine, make_candidate):
    candidate = make_candidate()
    queue = engine.subscribe(candidate.id)

    await engine.start_interview(candidate.id)
    engine.tick(candidate.id)

    first = queue.get_nowait()
    second = queue.get_nowait()
    assert first["type"] == "question"
    assert first["candidate_id"] == candidate.id
    assert second["type"] == "tick"

    engine.unsubscribe(candidate.id, queue)
    engine.tick(candidate.id)
    assert queue.empty()


@pytest.mark.asyncio
async def test_restore_sessions_rebuilds_from_store(engine, store, make_candidate, long_answer):
    candidate = make_candidate()
    await engine.start_interview(candidate.id)
    await engine.submit_answer(candidate.id, long_answer, time_spent=3)

    fresh = InterviewEngine(store, auto_tick=False)
    assert fresh.restore_sessions() == 1

    restored = fresh.get_session(candidate.id)
    assert restored.current_question_index == 1
    assert restored.timer_state()["time_remaining"] == restored.current_question.time_limit

    with pytest.raises(SessionAlreadyActive):
        await fresh.start_interview(candidate.id)


@pytest.mark.asyncio
async def test_auto_tick_runs_and_shutdown_cancels(store, make_candidate):
    engine = InterviewEngine(store, tick_interval=0.01, auto_tick=True, rng=random.Random(3))
    candidate = make_candidate()
    session = await engine.start_interview(candidate.id)

    await asyncio.sleep(0.1)
    assert session.timer.elapsed >= 1

    await engine.shutdown()
    elapsed = session.timer.elapsed
    await asyncio.sleep(0.05)
    assert session.timer.elapsed == elapsed

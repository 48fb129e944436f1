import pytest

from interview_assistant.errors import DuplicateCandidateError, InvalidTransition, NotFoundError, ValidationError
from interview_assistant.interview.models import Answer, Difficulty, InterviewStatus
from interview_assistant.store import CandidateStore


def _answer(question_id: str, score: int) -> Answer:
    return Answer(
        question_id=question_id,
        question="What?",
        answer="Because.",
        difficulty=Difficulty.MEDIUM,
        time_spent=10,
        score=score,
    )


def test_create_and_get(store):
    created = store.create(name="Ann", email="a@x.com", phone="555-0100")

    assert created.interview_status == InterviewStatus.NOT_STARTED
    assert created.final_score is None
    assert store.get(created.id).email == "a@x.com"
    assert len(store) == 1


def test_create_requires_name_and_email(store):
    with pytest.raises(ValidationError) as exc_info:
        store.create(name="", email="")
    assert exc_info.value.fields == ["name", "email"]

    with pytest.raises(ValidationError):
        store.create(name="Ann", email="not-an-email")


def test_duplicate_email_is_case_insensitive(store):
    store.create(name="Ann", email="a@x.com")
    with pytest.raises(DuplicateCandidateError):
        store.create(name="Other Ann", email="A@X.COM")


def test_get_unknown_raises_not_found(store):
    with pytest.raises(NotFoundError):
        store.get("missing")


def test_returned_candidates_are_copies(store):
    created = store.create(name="Ann", email="a@x.com")
    created.name = "Mutated"
    assert store.get(created.id).name == "Ann"


def test_append_answer_upserts_and_recomputes(make_candidate, store):
    candidate = make_candidate()
    store.append_answer(candidate.id, _answer("q1", 80))
    store.append_answer(candidate.id, _answer("q2", 60))
    updated = store.append_answer(candidate.id, _answer("q1", 100))

    assert [a.question_id for a in updated.answers] == ["q1", "q2"]
    assert updated.answers[0].score == 100
    assert updated.final_score == 80


def test_update_rejects_unknown_fields(make_candidate, store):
    candidate = make_candidate()
    with pytest.raises(ValidationError) as exc_info:
        store.update(candidate.id, {"name": "Bob", "is_admin": True})
    assert exc_info.value.fields == ["is_admin"]
    assert store.get(candidate.id).name == candidate.name


def test_status_only_moves_forward(make_candidate, store):
    candidate = make_candidate()
    store.update(candidate.id, {"interview_status": "in_progress"})
    store.update(candidate.id, {"interview_status": "completed"})

    with pytest.raises(InvalidTransition):
        store.update(candidate.id, {"interview_status": "in_progress"})

    reset = store.reset_candidate(candidate.id)
    assert reset.interview_status == InterviewStatus.NOT_STARTED
    assert reset.answers == []
    assert reset.final_score is None


def test_final_score_patch_ignored_once_answers_exist(make_candidate, store):
    candidate = make_candidate()
    assert store.update(candidate.id, {"final_score": 42}).final_score == 42

    store.append_answer(candidate.id, _answer("q1", 90))
    assert store.update(candidate.id, {"final_score": 10}).final_score == 90


def test_update_email_checks_uniqueness(make_candidate, store):
    first = make_candidate(email="one@example.com")
    second = make_candidate(email="two@example.com")

    with pytest.raises(DuplicateCandidateError):
        store.update(second.id, {"email": "ONE@example.com"})
    assert store.update(first.id, {"email": "One@Example.com"}).email == "One@Example.com"


def test_list_filters_sorts_and_paginates(store):
    scores = {"Ann": 90, "Bob": 40, "Cara": 70}
    for name, score in scores.items():
        candidate = store.create(name=name, email=f"{name.lower()}@example.com", phone="12345")
        store.append_answer(candidate.id, _answer("q1", score))

    result = store.list()
    assert [c.name for c in result["items"]] == ["Ann", "Cara", "Bob"]
    assert result["pagination"] == {"page": 1, "limit": 50, "total": 3, "pages": 1}

    page_two = store.list(limit=2, page=2)
    assert [c.name for c in page_two["items"]] == ["Bob"]
    assert page_two["pagination"]["pages"] == 2

    assert [c.name for c in store.list(query="CAR")["items"]] == ["Cara"]
    assert store.list(status="completed")["items"] == []


def test_list_rejects_unknown_sort_and_status(store):
    with pytest.raises(ValidationError):
        store.list(sort="alphabetical")
    with pytest.raises(ValidationError):
        store.list(status="archived")


def test_sync_merges_by_id(make_candidate, store):
    existing = make_candidate()
    merged = store.sync([
        {"id": existing.id, "summary": "from client"},
        {"id": "client-2", "name": "Dee", "email": "dee@example.com", "interview_status": "in_progress"},
        "not a dict",
    ])

    assert merged == 2
    assert store.get(existing.id).summary == "from client"
    assert store.get("client-2").interview_status == InterviewStatus.IN_PROGRESS


def test_sync_rejects_duplicate_email_for_new_id(make_candidate, store):
    existing = make_candidate(email="a@x.com")

    with pytest.raises(DuplicateCandidateError):
        store.sync([{"id": "other", "name": "Other", "email": "A@x.com"}])

    assert len(store) == 1
    assert store.get(existing.id).email == "a@x.com"


def test_sync_rejects_duplicate_email_within_batch(store):
    with pytest.raises(DuplicateCandidateError):
        store.sync([
            {"id": "c-1", "name": "One", "email": "same@x.com"},
            {"id": "c-2", "name": "Two", "email": "SAME@x.com"},
        ])

    assert len(store) == 0


def test_sync_cannot_move_status_backwards(make_candidate, store):
    candidate = make_candidate()
    store.update(candidate.id, {"interview_status": "completed"})

    with pytest.raises(InvalidTransition):
        store.sync([{"id": candidate.id, "interview_status": "not_started"}])

    assert store.get(candidate.id).interview_status == InterviewStatus.COMPLETED


def test_sync_validates_new_and_unknown_fields(store):
    with pytest.raises(ValidationError) as exc_info:
        store.sync([{"id": "c-1", "name": "Zed", "email": "z@x.com", "role": "admin"}])
    assert exc_info.value.fields == ["role"]

    with pytest.raises(ValidationError) as exc_info:
        store.sync([{"id": "c-1", "name": "Zed", "email": "not-an-email"}])
    assert exc_info.value.fields == ["email"]

    with pytest.raises(ValidationError) as exc_info:
        store.sync([{"id": "c-1", "email": "z@x.com"}])
    assert exc_info.value.fields == ["name"]


@pytest.mark.parametrize(
    "item,field",
    [
        ({"interview_status": "bogus"}, "interview_status"),
        ({"answers": [{"question_id": "q1", "score": 150}]}, "answers"),
        ({"answers": [{"question_id": "q1", "time_spent": "slow"}]}, "answers"),
        ({"current_question_index": "two"}, "current_question_index"),
    ],
)
def test_sync_malformed_values_are_validation_errors(store, item: dict, field: str):
    with pytest.raises(ValidationError) as exc_info:
        store.sync([{"id": "c-1", "name": "Zed", "email": "z@x.com", **item}])

    assert exc_info.value.fields == [field]
    assert len(store) == 0


def test_load_snapshot_rejects_duplicate_emails_and_bad_values(make_candidate, store):
    existing = make_candidate(email="a@x.com")
    duplicate = {
        "version": 2,
        "candidates": [
            {"id": "c-1", "name": "One", "email": "a@x.com"},
            {"id": "c-2", "name": "Two", "email": "A@X.com"},
        ],
    }
    with pytest.raises(DuplicateCandidateError):
        store.load_snapshot(duplicate)

    malformed = {"version": 2, "candidates": [{"id": "c-1", "name": "One", "interview_status": "bogus"}]}
    with pytest.raises(ValidationError):
        store.load_snapshot(malformed)

    assert store.get(existing.id).email == "a@x.com"


def test_file_backed_store_persists_and_reloads(tmp_path):
    path = tmp_path / "candidates.json"
    store = CandidateStore(path)
    candidate = store.create(name="Ann", email="a@x.com", phone="1")
    store.append_answer(candidate.id, _answer("q1", 77))
    store.save_session({"candidate_id": candidate.id, "id": "s-1", "questions": []})

    reloaded = CandidateStore(path)

    assert reloaded.storage == "file"
    assert reloaded.get(candidate.id).final_score == 77
    assert reloaded.get_session_record(candidate.id)["id"] == "s-1"
    assert not path.with_suffix(".tmp").exists()


def test_reset_drops_session_record(make_candidate, store):
    candidate = make_candidate()
    store.save_session({"candidate_id": candidate.id, "id": "s-1"})
    store.reset_candidate(candidate.id)
    assert store.get_session_record(candidate.id) is None


def test_list_created_desc(store):
    store.sync([
        {"id": "old", "name": "Old", "email": "old@example.com", "created_at": "2024-01-01T00:00:00+00:00"},
        {"id": "new", "name": "New", "email": "new@example.com", "created_at": "2024-06-01T00:00:00+00:00"},
    ])
    assert [c.id for c in store.list(sort="created_desc")["items"]] == ["new", "old"]

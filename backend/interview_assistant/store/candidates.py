from __future__ import annotations

import copy
import logging
import math
import re
import uuid
from pathlib import Path
from threading import Lock
from typing import Any, Callable

from interview_assistant.errors import DuplicateCandidateError, InvalidTransition, NotFoundError, ValidationError
from interview_assistant.interview.models import STATUS_ORDER, Answer, Candidate, InterviewStatus, utc_now_iso
from interview_assistant.interview.scorer import calculate_final_score, fleet_analytics
from interview_assistant.store.snapshot import build_snapshot, migrate_snapshot, read_snapshot_file, write_snapshot_file

logger = logging.getLogger("interview_assistant.store")

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PATCH_FIELDS = frozenset({
    "name",
    "email",
    "phone",
    "interview_status",
    "current_question_index",
    "answers",
    "final_score",
    "summary",
})
SYNC_FIELDS = PATCH_FIELDS | {"id", "resume_text", "created_at", "last_active_at"}
SORT_OPTIONS = {"score_desc", "created_desc"}
MAX_PAGE_SIZE = 200


def _refresh_score(candidate: Candidate) -> None:
    if candidate.answers:
        candidate.final_score = calculate_final_score(candidate.answers)


def _as_int(value: Any, field_name: str) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field_name} must be an integer", fields=[field_name]) from exc


def _parse_answer(item: Any) -> Answer:
    try:
        return Answer.from_dict(dict(item))
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"invalid answer: {exc}", fields=["answers"]) from exc


def _upsert_answer(answers: list[Answer], answer: Answer) -> list[Answer]:
    for index, existing in enumerate(answers):
        if existing.question_id == answer.question_id:
            answers[index] = answer
            return answers
    answers.append(answer)
    return answers


class CandidateStore:
    """
    Candidate collection with a single-writer discipline.

    Writers hold the lock and publish a new mapping; readers take the current mapping
    without locking and copy what they return.
    """

    def __init__(self, path: str | Path | None = None):
        self._lock = Lock()
        self._path = Path(path) if path else None
        self._candidates: dict[str, Candidate] = {}
        self._sessions: dict[str, dict] = {}
        if self._path is not None:
            payload = read_snapshot_file(self._path)
            if payload:
                self._load(payload)

    @property
    def storage(self) -> str:
        return "file" if self._path is not None else "in-memory"

    def __len__(self) -> int:
        return len(self._candidates)

    # -------------------------
    # READS
    # -------------------------

    def get(self, candidate_id: str) -> Candidate:
        candidate = self._candidates.get(str(candidate_id or ""))
        if candidate is None:
            raise NotFoundError("Candidate not found")
        return copy.deepcopy(candidate)

    def list(
        self,
        query: str = "",
        status: str | None = None,
        sort: str = "score_desc",
        page: int = 1,
        limit: int = 50,
    ) -> dict[str, Any]:
        items = list(self._candidates.values())

        needle = str(query or "").strip().lower()
        if needle:
            items = [
                c for c in items
                if needle in c.name.lower() or needle in c.email.lower() or needle in c.phone
            ]

        if status and status != "all":
            try:
                wanted = InterviewStatus(status)
            except ValueError as exc:
                raise ValidationError(f"unknown status filter: {status}", fields=["status"]) from exc
            items = [c for c in items if c.interview_status == wanted]

        if sort not in SORT_OPTIONS:
            raise ValidationError(f"unknown sort option: {sort}", fields=["sort"])
        if sort == "score_desc":
            items.sort(key=lambda c: c.final_score or 0, reverse=True)
        else:
            items.sort(key=lambda c: c.created_at, reverse=True)

        page = max(1, int(page or 1))
        limit = max(1, min(int(limit or 50), MAX_PAGE_SIZE))
        start = (page - 1) * limit
        total = len(items)

        return {
            "items": [copy.deepcopy(c) for c in items[start:start + limit]],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit),
            },
        }

    def analytics(self) -> dict:
        return fleet_analytics(self._candidates.values())

    def get_session_record(self, candidate_id: str) -> dict | None:
        record = self._sessions.get(str(candidate_id or ""))
        return copy.deepcopy(record) if record else None

    def list_session_records(self) -> list[dict]:
        return [copy.deepcopy(r) for r in self._sessions.values()]

    def snapshot(self) -> dict:
        return build_snapshot(list(self._candidates.values()), list(self._sessions.values()))

    # -------------------------
    # WRITES
    # -------------------------

    def create(self, name: str, email: str, phone: str = "", resume_text: str = "") -> Candidate:
        name = str(name or "").strip()
        email = str(email or "").strip()
        missing = [field for field, value in (("name", name), ("email", email)) if not value]
        if missing:
            raise ValidationError("Name and email are required", fields=missing)
        self._validate_email(email)

        with self._lock:
            self._ensure_unique_email(email)
            candidate = Candidate(
                id=uuid.uuid4().hex,
                name=name,
                email=email,
                phone=str(phone or "").strip(),
                resume_text=str(resume_text or ""),
            )
            self._publish(candidate)

        logger.info("created candidate id=%s", candidate.id)
        return copy.deepcopy(candidate)

    def update(self, candidate_id: str, patch: dict[str, Any]) -> Candidate:
        unknown = sorted(set(patch or {}) - PATCH_FIELDS)
        if unknown:
            raise ValidationError(f"unknown fields: {', '.join(unknown)}", fields=unknown)
        return self._mutate(candidate_id, lambda candidate: self._apply_patch(candidate, dict(patch or {})))

    def append_answer(self, candidate_id: str, answer: Answer) -> Candidate:
        def _apply(candidate: Candidate) -> None:
            _upsert_answer(candidate.answers, copy.deepcopy(answer))
            _refresh_score(candidate)

        return self._mutate(candidate_id, _apply)

    def reset_candidate(self, candidate_id: str) -> Candidate:
        def _apply(candidate: Candidate) -> None:
            candidate.interview_status = InterviewStatus.NOT_STARTED
            candidate.current_question_index = 0
            candidate.answers = []
            candidate.final_score = None
            candidate.summary = ""

        updated = self._mutate(candidate_id, _apply)
        self.drop_session(candidate_id)
        return updated

    def sync(self, items: list[dict]) -> int:
        """
        Merge client-held candidates by id.

        Known ids are patched with the same rules as ``update``; new ids go through
        the ``create`` checks. The batch is applied all-or-nothing.
        """
        merged = 0
        with self._lock:
            candidates = dict(self._candidates)
            for item in items or []:
                if not isinstance(item, dict):
                    continue
                unknown = sorted(set(item) - SYNC_FIELDS)
                if unknown:
                    raise ValidationError(f"unknown fields: {', '.join(unknown)}", fields=unknown)

                candidate_id = str(item.get("id") or "").strip() or uuid.uuid4().hex
                existing = candidates.get(candidate_id)
                patch = {key: value for key, value in item.items() if key in PATCH_FIELDS}
                if existing is not None:
                    candidate = copy.deepcopy(existing)
                else:
                    candidate = self._new_synced(candidate_id, item, candidates)
                    patch.pop("name", None)
                    patch.pop("email", None)
                    patch.pop("phone", None)
                if "resume_text" in item:
                    candidate.resume_text = str(item["resume_text"] or "")
                self._apply_patch(candidate, patch, candidates)
                candidate.last_active_at = utc_now_iso()
                candidates[candidate_id] = candidate
                merged += 1
            self._candidates = candidates
            self._persist()
        logger.info("synced candidates=%s total=%s", merged, len(self._candidates))
        return merged

    def save_session(self, record: dict) -> None:
        candidate_id = str(record.get("candidate_id") or "")
        if not candidate_id:
            raise ValidationError("session record needs a candidate_id", fields=["candidate_id"])
        with self._lock:
            sessions = dict(self._sessions)
            sessions[candidate_id] = copy.deepcopy(record)
            self._sessions = sessions
            self._persist()

    def drop_session(self, candidate_id: str) -> None:
        with self._lock:
            if candidate_id not in self._sessions:
                return
            sessions = dict(self._sessions)
            sessions.pop(candidate_id, None)
            self._sessions = sessions
            self._persist()

    def clear(self) -> None:
        with self._lock:
            self._candidates = {}
            self._sessions = {}
            self._persist()

    def load_snapshot(self, payload: dict) -> None:
        with self._lock:
            self._load(migrate_snapshot(payload))
            self._persist()

    def flush(self) -> None:
        with self._lock:
            self._persist()

    # -------------------------
    # INTERNALS
    # -------------------------

    def _mutate(self, candidate_id: str, apply_fn: Callable[[Candidate], None]) -> Candidate:
        with self._lock:
            current = self._candidates.get(str(candidate_id or ""))
            if current is None:
                raise NotFoundError("Candidate not found")
            updated = copy.deepcopy(current)
            apply_fn(updated)
            updated.last_active_at = utc_now_iso()
            self._publish(updated)
        return copy.deepcopy(updated)

    def _publish(self, candidate: Candidate) -> None:
        candidates = dict(self._candidates)
        candidates[candidate.id] = candidate
        self._candidates = candidates
        self._persist()

    def _new_synced(self, candidate_id: str, item: dict, pool: dict[str, Candidate]) -> Candidate:
        name = str(item.get("name") or "").strip()
        email = str(item.get("email") or "").strip()
        missing = [field for field, value in (("name", name), ("email", email)) if not value]
        if missing:
            raise ValidationError("Name and email are required", fields=missing)
        self._validate_email(email)
        self._ensure_unique_email(email, pool)
        return Candidate(
            id=candidate_id,
            name=name,
            email=email,
            phone=str(item.get("phone") or "").strip(),
            created_at=str(item.get("created_at") or utc_now_iso()),
        )

    def _apply_patch(self, candidate: Candidate, patch: dict[str, Any], pool: dict[str, Candidate] | None = None) -> None:
        if "name" in patch:
            name = str(patch["name"] or "").strip()
            if not name:
                raise ValidationError("Name cannot be empty", fields=["name"])
            candidate.name = name

        if "email" in patch:
            email = str(patch["email"] or "").strip()
            self._validate_email(email)
            if email.lower() != candidate.email.lower():
                self._ensure_unique_email(email, pool)
            candidate.email = email

        if "phone" in patch:
            candidate.phone = str(patch["phone"] or "").strip()

        if "interview_status" in patch:
            try:
                status = InterviewStatus(patch["interview_status"])
            except ValueError as exc:
                raise ValidationError("invalid interview_status", fields=["interview_status"]) from exc
            if STATUS_ORDER[status] < STATUS_ORDER[candidate.interview_status]:
                raise InvalidTransition(
                    f"interview_status cannot move from {candidate.interview_status.value} to {status.value}"
                )
            candidate.interview_status = status

        if "current_question_index" in patch:
            index = _as_int(patch["current_question_index"], "current_question_index")
            if index < 0:
                raise ValidationError("current_question_index must be non-negative", fields=["current_question_index"])
            candidate.current_question_index = index

        if "answers" in patch:
            answers: list[Answer] = []
            for item in patch["answers"] or []:
                answer = item if isinstance(item, Answer) else _parse_answer(item)
                _upsert_answer(answers, copy.deepcopy(answer))
            candidate.answers = answers
            if not answers:
                candidate.final_score = None

        if "final_score" in patch and not candidate.answers:
            value = patch["final_score"]
            candidate.final_score = None if value is None else max(0, min(100, _as_int(value, "final_score")))

        if "summary" in patch:
            candidate.summary = str(patch["summary"] or "")

        _refresh_score(candidate)

    def _validate_email(self, email: str) -> None:
        if not EMAIL_PATTERN.match(email or ""):
            raise ValidationError("A valid email is required", fields=["email"])

    def _ensure_unique_email(self, email: str, pool: dict[str, Candidate] | None = None) -> None:
        wanted = email.lower()
        candidates = self._candidates if pool is None else pool
        if any(c.email.lower() == wanted for c in candidates.values()):
            raise DuplicateCandidateError("Candidate with this email already exists", fields=["email"])

    def _load(self, payload: dict) -> None:
        candidates: dict[str, Candidate] = {}
        emails: set[str] = set()
        for item in payload.get("candidates") or []:
            if not isinstance(item, dict) or not item.get("id"):
                continue
            try:
                candidate = Candidate.from_dict(item)
            except (TypeError, ValueError) as exc:
                raise ValidationError(f"invalid candidate {item.get('id')}: {exc}", fields=["candidates"]) from exc
            email = candidate.email.lower()
            if email and email in emails:
                raise DuplicateCandidateError(f"duplicate candidate email: {candidate.email}", fields=["email"])
            emails.add(email)
            candidates[candidate.id] = candidate
        self._candidates = candidates
        self._sessions = {
            str(s.get("candidate_id")): dict(s)
            for s in payload.get("sessions") or []
            if isinstance(s, dict) and s.get("candidate_id")
        }

    def _persist(self) -> None:
        if self._path is None:
            return
        write_snapshot_file(self._path, self.snapshot())

import json
import logging
import re
from pathlib import Path
from typing import Any

from interview_assistant.errors import ValidationError
from interview_assistant.interview.models import Candidate, utc_now_iso

logger = logging.getLogger("interview_assistant.store.snapshot")

SNAPSHOT_VERSION = 2

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def _snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub(r"_\1", str(key)).lower()


def _snake_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {_snake(k): _snake_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_snake_keys(item) for item in value]
    return value


def _maybe_json(value: Any) -> Any:
    # Client-side persistence stores each slice as an encoded JSON string.
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return None
    return value


def build_snapshot(candidates: list[Candidate], sessions: list[dict]) -> dict:
    return {
        "version": SNAPSHOT_VERSION,
        "saved_at": utc_now_iso(),
        "candidates": [c.to_dict() for c in candidates],
        "sessions": [dict(s) for s in sessions],
    }


def _session_time_spent(session: dict, candidates: list[dict]) -> dict[str, int]:
    owner = next((c for c in candidates if c.get("id") == session.get("candidate_id")), None)
    if owner is None:
        return {}
    question_ids = {str(q.get("id")) for q in session.get("questions") or [] if isinstance(q, dict)}
    return {
        str(a.get("question_id")): max(0, int(a.get("time_spent") or 0))
        for a in owner.get("answers") or []
        if isinstance(a, dict) and str(a.get("question_id")) in question_ids
    }


def _migrate_v1(payload: dict) -> dict:
    candidate_slice = _maybe_json(payload.get("candidates")) or {}
    interview_slice = _maybe_json(payload.get("interviews")) or {}

    raw_candidates = candidate_slice.get("candidates") if isinstance(candidate_slice, dict) else candidate_slice
    candidates = [_snake_keys(c) for c in (raw_candidates or []) if isinstance(c, dict)]
    for candidate in candidates:
        for answer in candidate.get("answers") or []:
            answer.pop("evaluation", None)

    sessions = []
    current = interview_slice.get("currentSession") if isinstance(interview_slice, dict) else None
    if isinstance(current, dict):
        session = _snake_keys(current)
        session["time_spent_by_question"] = _session_time_spent(session, candidates)
        sessions.append(session)

    return {
        "version": SNAPSHOT_VERSION,
        "saved_at": utc_now_iso(),
        "candidates": candidates,
        "sessions": sessions,
    }


def migrate_snapshot(payload: dict) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("snapshot must be a JSON object")

    version = payload.get("version")
    if version is None or version == 1:
        logger.info("migrating snapshot from version 1")
        return _migrate_v1(payload)
    if version == SNAPSHOT_VERSION:
        return payload
    raise ValidationError(f"unsupported snapshot version: {version}")


def read_snapshot_file(path: Path) -> dict | None:
    if not path.exists():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("ignoring unreadable snapshot %s: %s", path, exc)
        return None
    return migrate_snapshot(payload)


def write_snapshot_file(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_suffix(".tmp")
    temp_path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    temp_path.replace(path)

import logging

from fastapi import APIRouter, File, Request, UploadFile

from core.logger import log_event
from interview_assistant.interview.models import Answer
from interview_assistant.resume.parser import missing_fields, parse_resume
from interview_assistant.schemas import (
    AnalyticsResponse,
    AnswerRecordRequest,
    CandidateCreateRequest,
    CandidateListResponse,
    CandidatePatchRequest,
    ParsedResumeResponse,
    SnapshotImportRequest,
    SyncRequest,
)
from interview_assistant.store.candidates import CandidateStore
from interview_assistant.system_metrics import increment_metric

router = APIRouter(prefix="/api")
logger = logging.getLogger("interview_assistant.api.candidates")


def _store(request: Request) -> CandidateStore:
    return request.app.state.store


@router.get("/candidates", response_model=CandidateListResponse)
def list_candidates(
    request: Request,
    q: str = "",
    status: str | None = None,
    sort: str = "score_desc",
    page: int = 1,
    limit: int = 50,
):
    result = _store(request).list(query=q, status=status, sort=sort, page=page, limit=limit)
    return {
        "items": [c.to_dict() for c in result["items"]],
        "pagination": result["pagination"],
    }


@router.post("/candidates", status_code=201)
def create_candidate(req: CandidateCreateRequest, request: Request):
    candidate = _store(request).create(
        name=req.name,
        email=req.email,
        phone=req.phone,
        resume_text=req.resume_text,
    )
    increment_metric("candidates_created")
    log_event("candidates", "created", "", candidate_id=candidate.id, resume_text=candidate.resume_text)
    return candidate.to_dict()


@router.get("/candidates/{candidate_id}")
def get_candidate(candidate_id: str, request: Request):
    return _store(request).get(candidate_id).to_dict()


@router.patch("/candidates/{candidate_id}")
@router.put("/candidates/{candidate_id}")
def update_candidate(candidate_id: str, req: CandidatePatchRequest, request: Request):
    patch = req.model_dump(exclude_unset=True)
    candidate = _store(request).update(candidate_id, patch)
    logger.info("updated candidate id=%s fields=%s", candidate_id, sorted(patch))
    return candidate.to_dict()


@router.post("/candidates/{candidate_id}/answers", status_code=201)
def record_answer(candidate_id: str, req: AnswerRecordRequest, request: Request):
    answer = Answer.from_dict(req.model_dump())
    candidate = _store(request).append_answer(candidate_id, answer)
    logger.info("recorded answer candidate=%s question=%s score=%s", candidate_id, answer.question_id, candidate.final_score)
    return candidate.to_dict()


@router.post("/candidates/{candidate_id}/reset")
async def reset_candidate(candidate_id: str, request: Request):
    candidate = request.app.state.engine.reset_interview(candidate_id)
    return candidate.to_dict()


@router.get("/analytics", response_model=AnalyticsResponse)
def analytics(request: Request):
    return _store(request).analytics()


@router.post("/sync")
def sync_candidates(req: SyncRequest, request: Request):
    store = _store(request)
    merged = store.sync(req.candidates)
    return {
        "success": True,
        "synced": merged,
        "candidates_count": len(store),
        "message": "Sync completed successfully",
    }


@router.get("/snapshot")
def export_snapshot(request: Request):
    return _store(request).snapshot()


@router.post("/snapshot")
async def import_snapshot(req: SnapshotImportRequest, request: Request):
    store = _store(request)
    store.load_snapshot(req.model_dump())
    request.app.state.engine.restore_sessions()
    return {"success": True, "candidates_count": len(store)}


@router.post("/resume/parse", response_model=ParsedResumeResponse)
async def parse_resume_upload(file: UploadFile = File(...)):
    content = await file.read()
    parsed = parse_resume(content, file.content_type or "", filename=file.filename or "")
    payload = parsed.to_dict()
    payload["missing_fields"] = missing_fields(parsed)
    return payload

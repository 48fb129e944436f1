from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class CandidateCreateRequest(BaseModel):
    name: str
    email: str
    phone: str = ""
    resume_text: str = ""


class CandidatePatchRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    email: str | None = None
    phone: str | None = None
    interview_status: Literal["not_started", "in_progress", "completed"] | None = None
    current_question_index: int | None = Field(default=None, ge=0)
    answers: list[dict[str, Any]] | None = None
    final_score: int | None = Field(default=None, ge=0, le=100)
    summary: str | None = None


class AnswerRecordRequest(BaseModel):
    question_id: str
    question: str = ""
    answer: str = ""
    difficulty: Literal["easy", "medium", "hard"] = "medium"
    time_spent: int = Field(default=0, ge=0)
    score: int | None = Field(default=None, ge=0, le=100)
    feedback: str = ""
    strengths: list[str] = []
    improvements: list[str] = []


class SubmitAnswerRequest(BaseModel):
    answer: str = ""
    time_spent: int | None = Field(default=None, ge=0)
    question_id: str | None = None


class SyncRequest(BaseModel):
    candidates: list[dict[str, Any]] = []


class SnapshotImportRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    version: int | None = None


class PaginationInfo(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class CandidateListResponse(BaseModel):
    items: list[dict[str, Any]]
    pagination: PaginationInfo


class AnalyticsResponse(BaseModel):
    total_candidates: int
    completed_interviews: int
    in_progress_interviews: int
    not_started_interviews: int
    average_score: int
    completion_rate: int
    score_distribution: dict[str, int]


class HealthResponse(BaseModel):
    ok: bool
    timestamp: str
    storage: str
    candidates_count: int
    version: str


class ParsedResumeResponse(BaseModel):
    name: str
    email: str
    phone: str
    text: str
    missing_fields: list[str]

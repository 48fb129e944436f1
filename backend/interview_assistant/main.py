import logging
import time
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import Settings
from core.logger import configure_logging
from interview_assistant import __version__
from interview_assistant.ai import RemoteInterviewAI, build_provider
from interview_assistant.api.candidates import router as candidates_router
from interview_assistant.api.interview import router as interview_router
from interview_assistant.errors import InterviewError, NotFoundError
from interview_assistant.interview.engine import InterviewEngine
from interview_assistant.schemas import HealthResponse
from interview_assistant.store import CandidateStore
from interview_assistant.system_metrics import get_metrics_snapshot

logger = logging.getLogger("interview_assistant.main")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = FastAPI(title="AI Interview Assistant", version=__version__)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s -> %s (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000.0,
        )
        return response

    @app.exception_handler(InterviewError)
    async def interview_error_handler(request: Request, exc: InterviewError):
        if exc.status_code >= 500:
            logger.error("%s on %s: %s", exc.__class__.__name__, request.url.path, exc.detail)
        content = {"detail": exc.detail, "error": exc.__class__.__name__}
        fields = getattr(exc, "fields", None)
        if fields:
            content["fields"] = fields
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.on_event("startup")
    async def startup():
        store = CandidateStore(settings.candidate_store_path or None)
        provider = build_provider(settings)
        remote_ai = RemoteInterviewAI(provider) if provider is not None else None
        engine = InterviewEngine(
            store,
            remote_ai=remote_ai,
            tick_interval=settings.timer_tick_sec,
            auto_tick=settings.timer_autotick,
        )
        engine.restore_sessions()
        app.state.store = store
        app.state.engine = engine

        logger.info("[SYSTEM] env=%s storage=%s candidates=%s", settings.env, store.storage, len(store))
        logger.info("[SYSTEM] CORS allow_origins=%s", list(settings.cors_allow_origins))
        logger.info("[SYSTEM] remote AI=%s", remote_ai.name if remote_ai else "disabled (rule-based)")

    @app.on_event("shutdown")
    async def shutdown():
        engine = getattr(app.state, "engine", None)
        if engine is not None:
            await engine.shutdown()
        logger.info("[SYSTEM] shutdown complete")

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok", "service": "interview-assistant"}

    @app.get("/api/health", response_model=HealthResponse)
    def health(request: Request):
        store: CandidateStore = request.app.state.store
        return {
            "ok": True,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "storage": store.storage,
            "candidates_count": len(store),
            "version": __version__,
        }

    @app.post("/api/reset")
    async def reset_all(request: Request):
        if not settings.allow_dev_reset:
            raise NotFoundError("Route not found")
        engine: InterviewEngine = request.app.state.engine
        engine.clear()
        logger.info("[SYSTEM] reset all data")
        return {"success": True, "message": "All data reset"}

    @app.get("/api/system/metrics")
    def system_metrics_route(request: Request):
        store: CandidateStore = request.app.state.store
        return get_metrics_snapshot(extra={
            "storage": store.storage,
            "candidates_count": len(store),
        })

    app.include_router(candidates_router)
    app.include_router(interview_router)
    return app


app = create_app()

import asyncio
import json
import logging

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from interview_assistant.errors import InterviewError, NotFoundError
from interview_assistant.interview.engine import InterviewEngine
from interview_assistant.schemas import SubmitAnswerRequest

router = APIRouter()
logger = logging.getLogger("interview_assistant.api.interview")


def _engine(request: Request) -> InterviewEngine:
    return request.app.state.engine


@router.post("/api/interview/{candidate_id}/start", status_code=201)
async def start_interview(candidate_id: str, request: Request):
    engine = _engine(request)
    await engine.start_interview(candidate_id)
    return engine.session_state(candidate_id)


@router.get("/api/interview/{candidate_id}")
async def get_interview(candidate_id: str, request: Request):
    return _engine(request).session_state(candidate_id)


@router.post("/api/interview/{candidate_id}/answer")
async def submit_answer(candidate_id: str, req: SubmitAnswerRequest, request: Request):
    return await _engine(request).submit_answer(
        candidate_id,
        req.answer,
        time_spent=req.time_spent,
        question_id=req.question_id,
    )


@router.post("/api/interview/{candidate_id}/pause")
async def pause_interview(candidate_id: str, request: Request):
    engine = _engine(request)
    engine.pause(candidate_id)
    return engine.session_state(candidate_id)


@router.post("/api/interview/{candidate_id}/resume")
async def resume_interview(candidate_id: str, request: Request):
    engine = _engine(request)
    engine.resume(candidate_id)
    return engine.session_state(candidate_id)


# ---------- LIVE FEED ----------

async def _send_json(websocket: WebSocket, send_lock: asyncio.Lock, payload: dict) -> None:
    async with send_lock:
        if websocket.client_state != WebSocketState.CONNECTED:
            return
        await websocket.send_json(payload)


async def _send_events(websocket: WebSocket, send_lock: asyncio.Lock, queue: asyncio.Queue) -> None:
    while True:
        event = await queue.get()
        await _send_json(websocket, send_lock, event)


async def _handle_command(engine: InterviewEngine, candidate_id: str, message: dict) -> dict | None:
    kind = str(message.get("type") or "").strip().lower()
    if kind == "ping":
        return {"type": "pong"}
    if kind == "state":
        return {"type": "state", "session": engine.session_state(candidate_id)}
    if kind == "pause":
        engine.pause(candidate_id)
        return None
    if kind == "resume":
        engine.resume(candidate_id)
        return None
    if kind == "answer":
        time_spent = message.get("time_spent")
        result = await engine.submit_answer(
            candidate_id,
            str(message.get("answer") or ""),
            time_spent=None if time_spent is None else int(time_spent),
            question_id=message.get("question_id") or None,
        )
        return {"type": "answer_result", **result}
    return {"type": "error", "error": "UnknownCommand", "detail": f"unknown message type: {kind or '<empty>'}"}


@router.websocket("/ws/interview/{candidate_id}")
async def interview_ws(websocket: WebSocket, candidate_id: str):
    engine: InterviewEngine = websocket.app.state.engine
    try:
        engine.store.get(candidate_id)
    except NotFoundError:
        await websocket.close(code=1008, reason="Candidate not found")
        return

    await websocket.accept()
    send_lock = asyncio.Lock()
    queue = engine.subscribe(candidate_id)
    sender = asyncio.create_task(_send_events(websocket, send_lock, queue))
    logger.info("interview feed connected candidate=%s", candidate_id)

    try:
        try:
            await _send_json(websocket, send_lock, {"type": "state", "session": engine.session_state(candidate_id)})
        except NotFoundError:
            await _send_json(websocket, send_lock, {"type": "state", "session": None})

        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                await _send_json(websocket, send_lock, {"type": "error", "error": "BadMessage", "detail": "message must be JSON"})
                continue
            if not isinstance(message, dict):
                continue
            try:
                reply = await _handle_command(engine, candidate_id, message)
            except InterviewError as exc:
                reply = {"type": "error", "error": exc.__class__.__name__, "detail": exc.detail}
            except (TypeError, ValueError) as exc:
                reply = {"type": "error", "error": "BadMessage", "detail": str(exc)}
            if reply is not None:
                await _send_json(websocket, send_lock, reply)
    except WebSocketDisconnect:
        logger.info("interview feed disconnected candidate=%s", candidate_id)
    finally:
        engine.unsubscribe(candidate_id, queue)
        sender.cancel()
        try:
            await sender
        except (asyncio.CancelledError, Exception):
            pass

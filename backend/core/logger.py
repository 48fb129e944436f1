import json
import logging
from typing import Any

logger = logging.getLogger("interview_assistant.events")

_REDACTED_KEYS = {"answer", "answer_text", "resume_text", "prompt", "summary", "text"}
_configured = False


def _sanitize_value(key: str, value: Any) -> Any:
    normalized_key = str(key or "").lower()
    if normalized_key in _REDACTED_KEYS:
        text = str(value or "")
        return {
            "redacted": True,
            "length": len(text),
        }
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, dict):
        return {str(k): _sanitize_value(str(k), v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_sanitize_value(normalized_key, item) for item in value]
    return str(value)


def configure_logging(level: str = "INFO") -> None:
    global _configured
    if _configured:
        logging.getLogger("interview_assistant").setLevel(level)
        return
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s | %(message)s",
    )
    logging.getLogger("interview_assistant").setLevel(level)
    _configured = True


def log_event(component: str, event: str, session_id: str, **kwargs) -> None:
    payload = {
        "component": str(component or "app"),
        "event": str(event or "unknown"),
        "session_id": str(session_id or ""),
    }
    payload.update({str(k): _sanitize_value(str(k), v) for k, v in kwargs.items()})
    logger.info(json.dumps(payload, ensure_ascii=False, default=str))

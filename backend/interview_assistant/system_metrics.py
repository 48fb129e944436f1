import threading
import time
from typing import Any


_lock = threading.Lock()
_DEFAULT_METRICS = (
    "candidates_created",
    "sessions_started",
    "sessions_completed",
    "sessions_reset",
    "answers_evaluated",
    "remote_evaluations",
    "remote_fallbacks",
    "timers_expired",
    "auto_advances",
    "evaluation_latency_total_ms",
    "evaluation_latency_samples",
)
_metrics: dict[str, float] = {name: 0.0 for name in _DEFAULT_METRICS}


def increment_metric(name: str, amount: float = 1.0) -> None:
    key = str(name or "").strip()
    if not key:
        return
    with _lock:
        _metrics[key] = float(_metrics.get(key, 0.0)) + float(amount)


def observe_evaluation_latency_ms(value_ms: float) -> None:
    latency = max(0.0, float(value_ms or 0.0))
    with _lock:
        _metrics["evaluation_latency_total_ms"] = float(_metrics.get("evaluation_latency_total_ms", 0.0)) + latency
        _metrics["evaluation_latency_samples"] = float(_metrics.get("evaluation_latency_samples", 0.0)) + 1.0


def reset_metrics() -> None:
    with _lock:
        for key in list(_metrics):
            _metrics[key] = 0.0


def get_metrics_snapshot(extra: dict[str, Any] | None = None) -> dict[str, Any]:
    with _lock:
        data = dict(_metrics)

    latency_samples = max(1.0, float(data.get("evaluation_latency_samples") or 0.0))

    payload: dict[str, Any] = {"generated_at": time.time()}
    payload.update({key: int(value) for key, value in data.items() if key != "evaluation_latency_total_ms"})
    payload["avg_evaluation_latency_ms"] = round(
        float(data.get("evaluation_latency_total_ms") or 0.0) / latency_samples, 2
    )

    if extra:
        payload.update(extra)
    return payload

import os
from dataclasses import dataclass, field
from pathlib import Path
from dotenv import load_dotenv

_BACKEND_ROOT = Path(__file__).resolve().parents[1]
_BACKEND_ENV_PATH = _BACKEND_ROOT / ".env"
load_dotenv(dotenv_path=_BACKEND_ENV_PATH, override=False)

DEFAULT_CORS_ORIGINS = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
)
DEVELOPMENT_ENVS = frozenset({"development", "dev", "test"})


def _env_str(name: str, default: str = "") -> str:
    return str(os.getenv(name) or default).strip()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float, minimum: float) -> float:
    try:
        value = float(os.getenv(name) or default)
    except ValueError:
        value = default
    return max(minimum, value)


def _env_int(name: str, default: int, minimum: int) -> int:
    try:
        value = int(os.getenv(name) or default)
    except ValueError:
        value = default
    return max(minimum, value)


def _parse_origins(raw: str) -> tuple[str, ...]:
    if not raw:
        return DEFAULT_CORS_ORIGINS
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    env: str = "development"
    log_level: str = "INFO"
    cors_allow_origins: tuple[str, ...] = field(default=DEFAULT_CORS_ORIGINS)

    ai_provider: str = "auto"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash"
    ai_timeout_sec: float = 12.0
    ai_retries: int = 1

    candidate_store_path: str = ""
    timer_tick_sec: float = 1.0
    timer_autotick: bool = True
    allow_dev_reset: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        env = _env_str("ENV", "development").lower()
        return cls(
            env=env,
            log_level=_env_str("LOG_LEVEL", "INFO").upper(),
            cors_allow_origins=_parse_origins(_env_str("CORS_ALLOW_ORIGINS")),
            ai_provider=_env_str("AI_PROVIDER", "auto").lower(),
            openai_api_key=_env_str("OPENAI_API_KEY"),
            openai_model=_env_str("OPENAI_MODEL", "gpt-4o-mini"),
            gemini_api_key=_env_str("GEMINI_API_KEY"),
            gemini_model=_env_str("GEMINI_MODEL", "gemini-1.5-flash"),
            ai_timeout_sec=_env_float("AI_TIMEOUT_SEC", 12.0, 1.0),
            ai_retries=_env_int("AI_RETRIES", 1, 0),
            candidate_store_path=_env_str("CANDIDATE_STORE_PATH"),
            timer_tick_sec=_env_float("TIMER_TICK_SEC", 1.0, 0.01),
            timer_autotick=_env_bool("TIMER_AUTOTICK", True),
            allow_dev_reset=_env_bool("ALLOW_DEV_RESET", env in DEVELOPMENT_ENVS),
        )

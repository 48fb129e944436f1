import random
import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


LONG_ANSWER = (
    "A component based approach keeps state and props explicit, and a hook lets you share logic. "
    "In practice I think about scalability, the database layer, caching, load balancing and the api "
    "contract, then measure complexity in time and space before any optimization or recursion tricks."
)


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("AI_PROVIDER", "none")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("GEMINI_API_KEY", "")
    monkeypatch.setenv("CANDIDATE_STORE_PATH", "")
    monkeypatch.setenv("TIMER_AUTOTICK", "false")


@pytest.fixture(autouse=True)
def _clean_metrics():
    from interview_assistant.system_metrics import reset_metrics

    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def store():
    from interview_assistant.store import CandidateStore

    return CandidateStore()


@pytest.fixture
def make_candidate(store):
    counter = {"n": 0}

    def _make(name: str = "Ann Lee", email: str | None = None, phone: str = "+91 9876543210"):
        counter["n"] += 1
        return store.create(name=name, email=email or f"user{counter['n']}@example.com", phone=phone)

    return _make


@pytest.fixture
def long_answer() -> str:
    return LONG_ANSWER

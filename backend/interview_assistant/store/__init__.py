from interview_assistant.store.candidates import CandidateStore
from interview_assistant.store.snapshot import SNAPSHOT_VERSION, migrate_snapshot

__all__ = ["CandidateStore", "SNAPSHOT_VERSION", "migrate_snapshot"]

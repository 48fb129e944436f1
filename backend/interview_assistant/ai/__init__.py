from interview_assistant.ai.providers import GeminiProvider, OpenAIProvider, build_provider
from interview_assistant.ai.remote import RemoteInterviewAI, extract_json

__all__ = ["GeminiProvider", "OpenAIProvider", "RemoteInterviewAI", "build_provider", "extract_json"]

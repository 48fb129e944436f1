class InterviewError(Exception):
    status_code = 500

    def __init__(self, detail: str = ""):
        super().__init__(detail)
        self.detail = str(detail or self.__class__.__name__)


class ValidationError(InterviewError):
    """Missing or malformed candidate data, or an unsupported resume file."""

    status_code = 400

    def __init__(self, detail: str = "", fields: list[str] | None = None):
        super().__init__(detail)
        self.fields = list(fields or [])


class DuplicateCandidateError(ValidationError):
    status_code = 409


class NotFoundError(InterviewError):
    status_code = 404


class SessionAlreadyActive(InterviewError):
    status_code = 409


class InvalidTransition(InterviewError):
    status_code = 409


class InsufficientQuestions(InterviewError):
    status_code = 500


class EvaluationUnavailable(InterviewError):
    """Remote AI failure. Callers always recover with the rule-based path."""

    status_code = 503

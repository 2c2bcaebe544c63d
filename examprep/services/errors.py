# examprep/services/errors.py
"""
Failure taxonomy shared by the evaluation pipeline and the generation services.

Every error carries the HTTP status the API layer answers with and a message
that is safe to show to the student. Diagnostic detail stays in the logs.
"""


class EvaluationError(Exception):
    status_code = 500
    default_message = "Unable to process answer sheet. Please try again."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class SubmissionNotFoundError(EvaluationError):
    status_code = 404
    default_message = "Submission not found"


class AcquisitionError(EvaluationError):
    """The document could not be fetched or yielded no usable text."""

    status_code = 422
    default_message = "Could not read text from the uploaded document."


class UpstreamServiceError(EvaluationError):
    """The LLM gateway answered with a non-success status or was unreachable."""

    status_code = 502
    default_message = "AI service error. Please retry."

    def __init__(self, message: str | None = None, *, upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class RateLimitError(UpstreamServiceError):
    status_code = 429
    default_message = "Rate limit exceeded. Please try again later."


class PaymentRequiredError(UpstreamServiceError):
    status_code = 402
    default_message = "Payment required. Please add AI credits."


class SchemaError(EvaluationError):
    """The model response carried no usable structured payload."""

    status_code = 502
    default_message = "AI output is not valid JSON. Please try again."


class PersistenceError(EvaluationError):
    status_code = 500
    default_message = "Failed to store evaluation results."


class GenerationError(EvaluationError):
    """Study content / mock paper generation preconditions not met."""

    default_message = "Unable to generate content. Please try again."

    def __init__(self, message: str | None = None, *, status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code

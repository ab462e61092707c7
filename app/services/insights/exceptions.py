"""Exceptions for the insight-generation pipeline."""


class InsightError(Exception):
    """Base error for the insight pipeline."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class DataUnavailableError(InsightError):
    """Every source slice a rubric needs came back empty."""


class ModelConfigurationError(InsightError):
    """The model service is not configured (no API key)."""


class ModelTimeoutError(InsightError):
    """The model call did not finish before its deadline and was cancelled."""

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Model request timed out after {timeout_seconds:g}s")


class ModelHttpError(InsightError):
    """The model service answered with a non-2xx status, or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ResponseParseError(InsightError):
    """The model response could not be turned into a JSON object."""

    def __init__(self, message: str, raw_text: str):
        self.raw_text = raw_text  # Full response text for diagnosis
        super().__init__(message)


class PersistenceError(InsightError):
    """The insight store rejected an insert."""


class DispatchTimeoutError(InsightError):
    """The dispatcher deadline elapsed before the work settled.

    The work itself is not cancelled; only the reported outcome changes.
    """

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Function timeout: Operation exceeded {timeout_seconds:g} seconds")


class BatchGenerationError(InsightError):
    """Every rubric of a "generate all" run failed.

    Carries the per-rubric errors so callers can see what went wrong.
    """

    def __init__(self, errors: dict[str, Exception]):
        self.errors = errors
        super().__init__(
            f"All GitHub insights failed to generate ({len(errors)} rubrics). "
            "Check logs for details."
        )

"""
Dispatcher error taxonomy.

Every failure the dispatch layer can surface derives from DispatchError,
so the API layer can map each class to a status code and error code
without inspecting messages.
"""

from interview_coach.dispatcher.classify import FailureKind


class DispatchError(Exception):
    """Base class for all dispatch failures."""

    code = "DISPATCH_ERROR"


class ConfigurationError(DispatchError):
    """No transport can be used: proxy absent and credential pool empty."""

    code = "NOT_CONFIGURED"


class TranslationError(DispatchError, ValueError):
    """The caller supplied an empty or malformed message list."""

    code = "TRANSLATION_ERROR"


class ProviderError(DispatchError):
    """
    A single failed provider or proxy call.

    Attributes:
        status: HTTP status, or None for network-level failures
        provider_code: Structured provider error code (e.g. RESOURCE_EXHAUSTED)
        kind: Failure classification driving rotation and retry
        retry_after_s: Provider-supplied "retry in N s" hint, if any
    """

    code = "PROVIDER_ERROR"

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        provider_code: str | None = None,
        kind: FailureKind = FailureKind.TERMINAL,
        retry_after_s: float | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.provider_code = provider_code
        self.kind = kind
        self.retry_after_s = retry_after_s

    @property
    def failover(self) -> bool:
        """Whether the next credential should be tried."""
        return self.kind.failover

    def __repr__(self) -> str:
        return (
            f"ProviderError(status={self.status}, kind={self.kind.value}, "
            f"message={self.message!r})"
        )


class QuotaExceededError(DispatchError):
    """Quota-class failures persisted through every retry."""

    code = "RATE_LIMITED"

    def __init__(self, message: str, retry_after_s: float | None = None) -> None:
        super().__init__(message)
        self.retry_after_s = retry_after_s


class ProviderUnavailableError(DispatchError):
    """Network or unavailable failures persisted through every retry."""

    code = "SERVICE_UNAVAILABLE"


class ResponseShapeError(DispatchError):
    """Provider returned success but the body lacks the expected text."""

    code = "RESPONSE_SHAPE_ERROR"


class ResponseParseError(DispatchError, ValueError):
    """Model output could not be parsed as a JSON object even after repair."""

    code = "PARSE_ERROR"

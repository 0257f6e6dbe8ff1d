"""
Pydantic Schemas for the Interview Coach API

This module defines the request and response models for the HTTP API:
- SessionPayload: Client-held session-sticky key indexes
- Task requests/responses: aptitude, coding, interview, resume, feedback
- Scoring requests/responses
- Error responses, status and health check schemas

Every task request may carry a `session`; every task response returns
the session as updated by the call, so the client keeps using the same
API key across a session.
"""

from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from interview_coach.dispatcher.credentials import SessionContext
from interview_coach.schemas.tasks import (
    AptitudeQuestion,
    CodeEvaluation,
    CodingProblem,
    FinalFeedback,
    ResumeAnalysis,
    RoundScores,
    TestCase,
)

if TYPE_CHECKING:
    from interview_coach.dispatcher.handlers import DispatchResult


# =============================================================================
# SESSION
# =============================================================================


class SessionPayload(BaseModel):
    """
    Session-sticky key indexes, keyed by credential pool name.

    Example:
        {"key_indexes": {"general": 2, "document": 0}}
    """

    key_indexes: dict[str, int] = Field(
        default_factory=dict,
        description="Index of the last key that succeeded, per pool",
    )

    @field_validator("key_indexes")
    @classmethod
    def validate_non_negative(cls, v: dict[str, int]) -> dict[str, int]:
        """Negative indexes are never valid key positions."""
        for pool, index in v.items():
            if index < 0:
                raise ValueError(f"Key index for pool '{pool}' cannot be negative")
        return v

    def to_context(self) -> SessionContext:
        return SessionContext(key_indexes=dict(self.key_indexes))

    @classmethod
    def from_context(cls, context: SessionContext) -> "SessionPayload":
        return cls(key_indexes=dict(context.key_indexes))


class SessionRequest(BaseModel):
    """Base for requests that carry an optional session."""

    session: SessionPayload | None = Field(
        default=None,
        description="Session returned by a previous call; omit to start a new session",
    )

    model_config = ConfigDict(extra="ignore")

    def context(self) -> SessionContext:
        return self.session.to_context() if self.session else SessionContext()


class SessionResponse(BaseModel):
    session: SessionPayload = Field(
        default_factory=SessionPayload,
        description="Updated session to send with the next call",
    )


class CompanyRoleRequest(SessionRequest):
    """Target company and role for question generation."""

    company: str = Field(..., min_length=1, max_length=200, description="Target company")
    role: str = Field(..., min_length=1, max_length=200, description="Target role")

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [{"company": "Google", "role": "Software Engineer"}]
        }
    )


# =============================================================================
# RAW CHAT
# =============================================================================


class MessagePayload(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(SessionRequest):
    """
    Request body for the raw /chat dispatch endpoint.

    Example:
        {
            "messages": [
                {"role": "system", "content": "Be terse."},
                {"role": "user", "content": "Hi"}
            ],
            "max_tokens": 200,
            "temperature": 0.5
        }
    """

    messages: list[MessagePayload] = Field(
        ...,
        description="Ordered conversation; must not be empty",
    )
    max_tokens: int = Field(default=1000, gt=0, le=8192, description="Maximum output tokens")
    temperature: float = Field(default=0.7, ge=0.0, le=1.0, description="Sampling temperature")
    purpose: Literal["general", "document"] = Field(
        default="general",
        description="Credential pool for direct calls",
    )


class ChatResponse(SessionResponse):
    """Provider text plus how it was obtained."""

    text: str
    transport: str = Field(..., description="proxy, gemini or openai")
    key_index: int | None = Field(default=None, description="Key used (direct transport only)")
    attempts: int = Field(default=1, ge=1)
    latency_ms: float = Field(default=0.0, ge=0.0)

    @classmethod
    def from_dispatch(cls, result: "DispatchResult") -> "ChatResponse":
        return cls(
            text=result.text,
            transport=result.transport,
            key_index=result.key_index,
            attempts=result.attempts,
            latency_ms=round(result.latency_ms, 2),
            session=SessionPayload.from_context(result.context),
        )


# =============================================================================
# TASK REQUESTS AND RESPONSES
# =============================================================================


class AptitudeQuestionsResponse(SessionResponse):
    questions: list[AptitudeQuestion] = Field(default_factory=list)


class CodingProblemsResponse(SessionResponse):
    problems: list[CodingProblem] = Field(default_factory=list)


class CodeEvaluationRequest(SessionRequest):
    """A candidate's solution to one coding problem."""

    title: str = Field(..., min_length=1)
    description: str = Field(default="")
    test_cases: list[TestCase] = Field(default_factory=list)
    code: str = Field(..., min_length=1, max_length=50000)
    language: str = Field(default="python", max_length=50)


class CodeEvaluationResponse(SessionResponse):
    evaluation: CodeEvaluation


class InterviewTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class InterviewReplyRequest(SessionRequest):
    """
    Next candidate message in the mock interview.

    `history` holds the earlier turns; its length selects the interview
    stage. Resume and projects are only used after the introduction.
    """

    company: str = Field(..., min_length=1, max_length=200)
    role: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=10000)
    history: list[InterviewTurn] = Field(default_factory=list)
    resume: str | None = Field(default=None, description="Resume summary text")
    projects: list[str] = Field(default_factory=list)


class InterviewReplyResponse(SessionResponse):
    reply: str
    stage: str = Field(..., description="Interview stage the reply was generated for")


class ResumeAnalysisRequest(SessionRequest):
    text: str = Field(..., min_length=1, max_length=100000, description="Plain resume text")

    @field_validator("text")
    @classmethod
    def validate_text_not_whitespace(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Resume text cannot be empty or whitespace only")
        return v


class ResumeAnalysisResponse(SessionResponse):
    analysis: ResumeAnalysis


class FinalFeedbackRequest(SessionRequest):
    company: str = Field(..., min_length=1, max_length=200)
    role: str = Field(..., min_length=1, max_length=200)
    scores: RoundScores


class FinalFeedbackResponse(SessionResponse):
    feedback: FinalFeedback
    badge: str = Field(..., description="Label for the overall score band")


# =============================================================================
# SCORING
# =============================================================================


class AptitudeScoreRequest(BaseModel):
    correct_answers: list[str] = Field(..., description="Correct option letter per question")
    selected_answers: dict[int, str] = Field(
        default_factory=dict,
        description="Selected option per question index; omit unanswered questions",
    )


class CodingScoreRequest(BaseModel):
    results: list[bool] = Field(..., description="Whether each problem was solved")


class InterviewScoreRequest(BaseModel):
    user_replies: list[str] = Field(..., description="Candidate messages in the interview")


class ScoreResponse(BaseModel):
    score: int = Field(..., ge=0, le=100)
    badge: str


# =============================================================================
# STATUS
# =============================================================================


class StatusResponse(BaseModel):
    """Dispatcher configuration summary; never includes key material."""

    provider: str
    proxy_configured: bool
    keys_configured: int = Field(..., ge=0)
    document_keys_configured: int = Field(..., ge=0)
    active_key_index: int | None = None
    failover: bool


# =============================================================================
# ERROR MODELS
# =============================================================================


class ErrorCodes:
    """
    Standard error codes for API responses.

    These codes enable programmatic error handling by clients
    without parsing human-readable messages.
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_CONFIGURED = "NOT_CONFIGURED"
    TRANSLATION_ERROR = "TRANSLATION_ERROR"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    RESPONSE_SHAPE_ERROR = "RESPONSE_SHAPE_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorDetail(BaseModel):
    """
    Detailed error information for API error responses.

    Provides machine-readable error codes, human-readable messages,
    and optional field information for validation errors.
    """

    code: str = Field(
        ...,
        description="Machine-readable error code for programmatic handling",
    )

    message: str = Field(
        ...,
        description="Human-readable error message",
    )

    field: str | None = Field(
        default=None,
        description="Field that caused the error (for validation errors)",
    )

    retry_after_seconds: float | None = Field(
        default=None,
        ge=0.0,
        description="Suggested cool-down before retrying (rate limit errors)",
    )


class ErrorResponse(BaseModel):
    """
    Standard error response format for all API errors.

    Example:
        {
            "error": {
                "code": "RATE_LIMITED",
                "message": "API quota exceeded, please retry later.",
                "retry_after_seconds": 11.0
            }
        }
    """

    error: ErrorDetail = Field(
        ...,
        description="Error details",
    )


# =============================================================================
# HEALTH MODELS
# =============================================================================


class ComponentHealth(BaseModel):
    """
    Health status of an individual system component.

    Used to report the proxy and credential pools in health responses.
    """

    name: str = Field(
        ...,
        description="Component name (e.g., 'proxy', 'general_keys')",
    )

    status: Literal["healthy", "degraded", "unhealthy"] = Field(
        ...,
        description="Component health status",
    )

    message: str | None = Field(
        default=None,
        description="Additional status information",
    )


class HealthResponse(BaseModel):
    """
    Response from the /health endpoint.

    Example:
        {
            "status": "healthy",
            "service": "interview-coach",
            "version": "0.1.0",
            "components": [
                {"name": "proxy", "status": "healthy", "message": "Proxy configured"},
                {"name": "general_keys", "status": "healthy", "message": "3 keys"}
            ],
            "uptime_seconds": 3600.5
        }
    """

    status: Literal["healthy", "degraded", "unhealthy"] = Field(
        ...,
        description="Overall service health status",
    )

    service: str = Field(
        default="interview-coach",
        description="Service identifier",
    )

    version: str = Field(
        ...,
        description="Application version",
    )

    components: list[ComponentHealth] = Field(
        default_factory=list,
        description="Health status of individual components",
    )

    uptime_seconds: float | None = Field(
        default=None,
        ge=0.0,
        description="Time since service start in seconds",
    )

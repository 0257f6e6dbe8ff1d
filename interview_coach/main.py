"""
Interview Coach: FastAPI Application Entry Point

This module initializes the FastAPI application and defines the endpoints:
- /health, /config, /status: Service and dispatcher state
- /chat: Raw dispatch of a message list
- /aptitude, /coding, /interview, /resume, /feedback: Interview-coach tasks
- /scores: Round scoring helpers

The application uses a lifespan context manager to:
1. Load configuration and configure logging at startup
2. Report which transports and key pools are configured
3. Close the shared HTTP clients on shutdown

Dispatcher errors are mapped to HTTP statuses and a consistent error
envelope by exception handlers at the bottom of this module.
"""

from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError

from interview_coach import __version__
from interview_coach.config import Settings, get_settings, configure_logging
from interview_coach.dispatcher import (
    CallPurpose,
    ConfigurationError,
    DispatchError,
    ProviderError,
    ProviderUnavailableError,
    QuotaExceededError,
    ResponseParseError,
    ResponseShapeError,
    TranslationError,
    close_clients,
    dispatch,
    get_api_status,
    messages_from_dicts,
)
from interview_coach.schemas import (
    AptitudeQuestionsResponse,
    AptitudeScoreRequest,
    ChatRequest,
    ChatResponse,
    CodeEvaluationRequest,
    CodeEvaluationResponse,
    CodingProblemsResponse,
    CodingScoreRequest,
    CompanyRoleRequest,
    ComponentHealth,
    ErrorCodes,
    ErrorDetail,
    ErrorResponse,
    FinalFeedbackRequest,
    FinalFeedbackResponse,
    HealthResponse,
    InterviewReplyRequest,
    InterviewReplyResponse,
    InterviewScoreRequest,
    ResumeAnalysisRequest,
    ResumeAnalysisResponse,
    ScoreResponse,
    SessionPayload,
    StatusResponse,
)
from interview_coach.scoring import (
    aptitude_score,
    coding_score,
    interview_score,
    score_badge,
)
from interview_coach.tasks import (
    analyze_resume_text,
    evaluate_code_solution,
    generate_aptitude_questions,
    generate_coding_problems,
    generate_final_feedback,
    generate_interview_reply,
    interview_stage,
)

logger = logging.getLogger(__name__)

_start_time: float = 0.0

# Most specific first; the first isinstance match wins
ERROR_STATUS: tuple[tuple[type[DispatchError], int], ...] = (
    (ConfigurationError, 503),
    (TranslationError, 422),
    (QuotaExceededError, 429),
    (ProviderUnavailableError, 503),
    (ResponseShapeError, 502),
    (ResponseParseError, 502),
    (ProviderError, 502),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler for startup/shutdown events.

    On startup:
    - Loads configuration from environment
    - Configures logging
    - Logs configured transports (key counts only, never keys)

    On shutdown:
    - Closes shared provider clients
    """
    settings = get_settings()
    configure_logging(settings)

    logger.info("=" * 60)
    logger.info("Interview Coach starting up...")
    logger.info("=" * 60)

    status = get_api_status()
    logger.info(f"AI provider: {status['provider']}")
    logger.info(f"Proxy: {'configured' if status['proxy_configured'] else 'not configured'}")
    logger.info(f"General keys: {status['keys_configured']}")
    logger.info(f"Document keys: {status['document_keys_configured']}")
    logger.info(f"Key failover: {'enabled' if status['failover'] else 'disabled'}")
    logger.info(f"Debug mode: {'enabled' if settings.debug else 'disabled'}")

    if not status["proxy_configured"] and not status["keys_configured"]:
        logger.warning(
            "Neither PROXY_URL nor any API key is configured; "
            "AI requests will fail with NOT_CONFIGURED"
        )

    global _start_time
    _start_time = time.time()

    logger.info("=" * 60)
    logger.info("Interview Coach ready to accept requests")

    yield  # Application runs here

    logger.info("Interview Coach shutting down...")
    await close_clients()


app = FastAPI(
    title="Interview Coach",
    description="AI interview practice: question generation, mock interviews and feedback",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_RESPONSES = {
    422: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@app.get("/")
async def root():
    """
    Root endpoint with API information.
    """
    return {
        "name": "Interview Coach",
        "description": "AI interview practice service",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "status": "/status",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check service health and dispatcher configuration.",
)
async def health_check():
    """
    Health check endpoint for monitoring and orchestration.

    Unhealthy when no transport can be used at all; degraded when
    direct calls have a single key and so cannot fail over.
    """
    status = get_api_status()
    components = []

    components.append(
        ComponentHealth(
            name="proxy",
            status="healthy",
            message="Proxy configured" if status["proxy_configured"] else "Direct transport only",
        )
    )

    for name, count in (
        ("general_keys", status["keys_configured"]),
        ("document_keys", status["document_keys_configured"]),
    ):
        if count == 0:
            component_status = "degraded" if status["proxy_configured"] else "unhealthy"
        elif count == 1:
            component_status = "degraded"
        else:
            component_status = "healthy"
        components.append(
            ComponentHealth(
                name=name,
                status=component_status,
                message=f"{count} key{'s' if count != 1 else ''} configured",
            )
        )

    statuses = {c.status for c in components}
    if "unhealthy" in statuses:
        overall_status = "unhealthy"
    elif "degraded" in statuses:
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    uptime = time.time() - _start_time if _start_time > 0 else 0.0

    return HealthResponse(
        status=overall_status,
        service="interview-coach",
        version=__version__,
        components=components,
        uptime_seconds=uptime,
    )


@app.get("/config")
async def show_config(settings: Settings = Depends(get_settings)):
    """
    Returns non-sensitive configuration values.

    API keys are SecretStr and are NOT exposed in this endpoint;
    only the size of each key pool is reported.
    """
    status = get_api_status()
    return {
        "provider": {
            "name": settings.ai_provider,
            "gemini_api_url": settings.gemini_api_url,
            "openai_model": settings.openai_model,
            "proxy_configured": status["proxy_configured"],
        },
        "retry": {
            "proxy_max_attempts": settings.proxy_max_attempts,
            "proxy_backoff_ms": settings.proxy_backoff_ms,
            "direct_quota_attempts": settings.direct_quota_attempts,
            "direct_network_attempts": settings.direct_network_attempts,
            "direct_backoff_ms": settings.direct_backoff_ms,
            "retry_hint_margin_ms": settings.retry_hint_margin_ms,
            "request_timeout_s": settings.request_timeout_s,
        },
        "server": {
            "host": settings.host,
            "port": settings.port,
            "debug": settings.debug,
        },
        "logging": {
            "level": settings.log_level,
        },
        "api_keys_configured": {
            "general": status["keys_configured"],
            "document": status["document_keys_configured"],
        },
    }


@app.get("/status", response_model=StatusResponse, summary="Dispatcher status")
async def api_status():
    """Key pool sizes, proxy configuration and failover availability."""
    return StatusResponse(**get_api_status())


@app.post(
    "/chat",
    response_model=ChatResponse,
    responses=ERROR_RESPONSES,
    summary="Dispatch a conversation",
)
async def chat(request: ChatRequest):
    """
    Send a raw message list through the dispatcher.

    System messages are folded into the first turn for providers without
    a system role. The response carries the transport used and the
    updated session.
    """
    messages = messages_from_dicts([m.model_dump() for m in request.messages])
    result = await dispatch(
        messages,
        request.max_tokens,
        request.temperature,
        context=request.context(),
        purpose=CallPurpose(request.purpose),
    )
    return ChatResponse.from_dispatch(result)


@app.post(
    "/aptitude/questions",
    response_model=AptitudeQuestionsResponse,
    responses=ERROR_RESPONSES,
    summary="Generate aptitude questions",
)
async def aptitude_questions(request: CompanyRoleRequest):
    questions, context = await generate_aptitude_questions(
        request.company, request.role, request.context()
    )
    return AptitudeQuestionsResponse(
        questions=questions, session=SessionPayload.from_context(context)
    )


@app.post(
    "/coding/problems",
    response_model=CodingProblemsResponse,
    responses=ERROR_RESPONSES,
    summary="Generate coding problems",
)
async def coding_problems(request: CompanyRoleRequest):
    problems, context = await generate_coding_problems(
        request.company, request.role, request.context()
    )
    return CodingProblemsResponse(problems=problems, session=SessionPayload.from_context(context))


@app.post(
    "/coding/evaluate",
    response_model=CodeEvaluationResponse,
    responses=ERROR_RESPONSES,
    summary="Evaluate a coding solution",
)
async def coding_evaluate(request: CodeEvaluationRequest):
    evaluation, context = await evaluate_code_solution(
        request.title,
        request.description,
        request.test_cases,
        request.code,
        request.language,
        request.context(),
    )
    return CodeEvaluationResponse(
        evaluation=evaluation, session=SessionPayload.from_context(context)
    )


@app.post(
    "/interview/reply",
    response_model=InterviewReplyResponse,
    responses=ERROR_RESPONSES,
    summary="Mock interviewer reply",
)
async def interview_reply(request: InterviewReplyRequest):
    """
    Produce the interviewer's next turn.

    The stage (introduction, behavioral, technical, company/role) is
    chosen from the length of the history.
    """
    history = messages_from_dicts([turn.model_dump() for turn in request.history])
    reply, context = await generate_interview_reply(
        request.company,
        request.role,
        request.message,
        history,
        request.resume,
        request.projects,
        request.context(),
    )
    return InterviewReplyResponse(
        reply=reply,
        stage=interview_stage(len(history)).value,
        session=SessionPayload.from_context(context),
    )


@app.post(
    "/resume/analyze",
    response_model=ResumeAnalysisResponse,
    responses=ERROR_RESPONSES,
    summary="Analyze resume text",
)
async def resume_analyze(request: ResumeAnalysisRequest):
    analysis, context = await analyze_resume_text(request.text, request.context())
    return ResumeAnalysisResponse(analysis=analysis, session=SessionPayload.from_context(context))


@app.post(
    "/feedback/final",
    response_model=FinalFeedbackResponse,
    responses={422: {"model": ErrorResponse}},
    summary="Final interview feedback",
)
async def feedback_final(request: FinalFeedbackRequest):
    """
    Coaching report across the three rounds.

    Always succeeds for a valid request: provider failures produce a
    basic report marked `degraded`.
    """
    feedback, context = await generate_final_feedback(
        request.company, request.role, request.scores, request.context()
    )
    return FinalFeedbackResponse(
        feedback=feedback,
        badge=score_badge(feedback.overall_score),
        session=SessionPayload.from_context(context),
    )


@app.post("/scores/aptitude", response_model=ScoreResponse, summary="Score the aptitude round")
async def score_aptitude(request: AptitudeScoreRequest):
    score = aptitude_score(request.correct_answers, request.selected_answers)
    return ScoreResponse(score=score, badge=score_badge(score))


@app.post("/scores/coding", response_model=ScoreResponse, summary="Score the coding round")
async def score_coding(request: CodingScoreRequest):
    score = coding_score(request.results)
    return ScoreResponse(score=score, badge=score_badge(score))


@app.post("/scores/interview", response_model=ScoreResponse, summary="Score the interview round")
async def score_interview(request: InterviewScoreRequest):
    score = interview_score(request.user_replies)
    return ScoreResponse(score=score, badge=score_badge(score))


@app.exception_handler(DispatchError)
async def dispatch_exception_handler(
    request: Request, exc: DispatchError
) -> JSONResponse:
    """
    Map dispatcher errors to HTTP statuses and the error envelope.

    Rate limit errors carry the suggested cool-down both in the body and
    in a Retry-After header.
    """
    status_code = next(
        (status for error_type, status in ERROR_STATUS if isinstance(exc, error_type)),
        500,
    )
    code = exc.code if status_code != 500 else ErrorCodes.INTERNAL_ERROR

    retry_after = exc.retry_after_s if isinstance(exc, QuotaExceededError) else None
    logger.warning(f"{request.url.path} failed with {code}: {exc}")

    headers = None
    if retry_after is not None:
        headers = {"Retry-After": str(max(1, round(retry_after)))}

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=code,
                message=str(exc),
                retry_after_seconds=retry_after,
            )
        ).model_dump(exclude_none=True),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Returns a consistent error response format with the first validation
    error's details for client-side error handling.
    """
    errors = exc.errors()
    first_error = errors[0] if errors else {}

    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": ErrorCodes.VALIDATION_ERROR,
                "message": first_error.get("msg", "Validation failed"),
                "field": ".".join(str(loc) for loc in first_error.get("loc", [])),
            }
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(
    request: Request, exc: HTTPException
) -> JSONResponse:
    """
    Handle HTTP exceptions with consistent format.
    """
    detail = exc.detail
    if isinstance(detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": detail})
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": "HTTP_ERROR", "message": str(detail)}},
    )


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Logs the full exception for debugging and returns a generic error
    response to avoid leaking implementation details.
    """
    logger.exception("Unhandled exception")
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": ErrorCodes.INTERNAL_ERROR,
                "message": "An unexpected error occurred",
            }
        },
    )


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "interview_coach.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )

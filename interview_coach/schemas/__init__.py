"""
Schemas module: Pydantic request/response models.

This module provides validated data models for the Interview Coach API:
- Task result models parsed from (repaired) model output
- Request/response models for every endpoint
- Error response models for consistent error handling
- Status and health check response models

Example usage:
    from interview_coach.schemas import CompanyRoleRequest, CodeEvaluation

    request = CompanyRoleRequest(company="Google", role="SRE")
    evaluation = CodeEvaluation.model_validate({"is_correct": True})
    assert evaluation.score == 100
"""

from interview_coach.schemas.api import (
    # Session
    SessionPayload,
    SessionRequest,
    SessionResponse,
    # Request models
    AptitudeScoreRequest,
    ChatRequest,
    CodeEvaluationRequest,
    CodingScoreRequest,
    CompanyRoleRequest,
    FinalFeedbackRequest,
    InterviewReplyRequest,
    InterviewScoreRequest,
    InterviewTurn,
    MessagePayload,
    ResumeAnalysisRequest,
    # Response models
    AptitudeQuestionsResponse,
    ChatResponse,
    CodeEvaluationResponse,
    CodingProblemsResponse,
    FinalFeedbackResponse,
    InterviewReplyResponse,
    ResumeAnalysisResponse,
    ScoreResponse,
    StatusResponse,
    # Error models
    ErrorCodes,
    ErrorDetail,
    ErrorResponse,
    # Health models
    ComponentHealth,
    HealthResponse,
)
from interview_coach.schemas.tasks import (
    AptitudeQuestion,
    AptitudeQuestionSet,
    CodeEvaluation,
    CodingProblem,
    CodingProblemSet,
    FinalFeedback,
    ResumeAnalysis,
    ResumeProject,
    RoundScores,
    TestCase,
    TestResult,
)

__all__ = [
    # Task results
    "AptitudeQuestion",
    "AptitudeQuestionSet",
    "CodingProblem",
    "CodingProblemSet",
    "TestCase",
    "TestResult",
    "CodeEvaluation",
    "ResumeProject",
    "ResumeAnalysis",
    "RoundScores",
    "FinalFeedback",
    # Session
    "SessionPayload",
    "SessionRequest",
    "SessionResponse",
    # Request models
    "MessagePayload",
    "ChatRequest",
    "CompanyRoleRequest",
    "CodeEvaluationRequest",
    "InterviewTurn",
    "InterviewReplyRequest",
    "ResumeAnalysisRequest",
    "FinalFeedbackRequest",
    "AptitudeScoreRequest",
    "CodingScoreRequest",
    "InterviewScoreRequest",
    # Response models
    "ChatResponse",
    "AptitudeQuestionsResponse",
    "CodingProblemsResponse",
    "CodeEvaluationResponse",
    "InterviewReplyResponse",
    "ResumeAnalysisResponse",
    "FinalFeedbackResponse",
    "ScoreResponse",
    "StatusResponse",
    # Error models
    "ErrorCodes",
    "ErrorDetail",
    "ErrorResponse",
    # Health models
    "ComponentHealth",
    "HealthResponse",
]

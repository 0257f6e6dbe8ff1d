"""
Task Generators

Each task is "build the prompt, dispatch, parse the JSON, apply the
schema". Every function takes the caller's SessionContext and returns
its result together with the context as updated by the dispatch, so the
session keeps the key that last worked.

Final feedback never fails: when dispatch or parsing fails, a basic
report is built locally from the round scores.
"""

import logging
from collections.abc import Sequence
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from interview_coach.dispatcher import (
    ChatMessage,
    DispatchError,
    ResponseParseError,
    SessionContext,
    dispatch,
    dispatch_json,
)
from interview_coach.schemas.tasks import (
    AptitudeQuestion,
    AptitudeQuestionSet,
    CodeEvaluation,
    CodingProblem,
    CodingProblemSet,
    FinalFeedback,
    ResumeAnalysis,
    RoundScores,
    TestCase,
)
from interview_coach.scoring import confidence_rating, overall_score
from interview_coach.tasks.prompts import (
    TASK_PROFILES,
    TaskName,
    aptitude_messages,
    code_review_messages,
    coding_messages,
    feedback_messages,
    interview_messages,
    resume_messages,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _validate(model: type[M], data: dict[str, Any], task: TaskName) -> M:
    """Apply a result schema to parsed model output."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(f"{task.value}: model output does not match schema: {e}")
        raise ResponseParseError(
            f"Model output for {task.value} does not match the expected shape"
        ) from e


async def _run_json_task(
    task: TaskName,
    messages: list[ChatMessage],
    model: type[M],
    context: SessionContext | None,
) -> tuple[M, SessionContext]:
    profile = TASK_PROFILES[task]
    data, result = await dispatch_json(
        messages,
        profile.max_tokens,
        profile.temperature,
        context=context,
        purpose=profile.purpose,
    )
    logger.info(f"{task.value} generated via {result.transport} in {result.latency_ms:.0f}ms")
    return _validate(model, data, task), result.context


async def generate_aptitude_questions(
    company: str,
    role: str,
    context: SessionContext | None = None,
) -> tuple[list[AptitudeQuestion], SessionContext]:
    """Generate company-specific multiple choice aptitude questions."""
    question_set, context = await _run_json_task(
        TaskName.APTITUDE_QUESTIONS,
        aptitude_messages(company, role),
        AptitudeQuestionSet,
        context,
    )
    return question_set.questions, context


async def generate_coding_problems(
    company: str,
    role: str,
    context: SessionContext | None = None,
) -> tuple[list[CodingProblem], SessionContext]:
    """Generate company-specific coding problems with test cases."""
    problem_set, context = await _run_json_task(
        TaskName.CODING_PROBLEMS,
        coding_messages(company, role),
        CodingProblemSet,
        context,
    )
    return problem_set.problems, context


async def generate_interview_reply(
    company: str,
    role: str,
    message: str,
    history: Sequence[ChatMessage] = (),
    resume: str | None = None,
    projects: Sequence[str] = (),
    context: SessionContext | None = None,
) -> tuple[str, SessionContext]:
    """
    Produce the interviewer's next turn.

    Args:
        company: Target company.
        role: Target role.
        message: The candidate's latest message.
        history: Earlier user/assistant turns; their count sets the stage.
        resume: Resume summary, used after the introduction stage.
        projects: Project names, used after the introduction stage.
        context: Caller's session context.

    Returns:
        Tuple of (reply text, updated session context).
    """
    profile = TASK_PROFILES[TaskName.INTERVIEW_REPLY]
    result = await dispatch(
        interview_messages(company, role, message, history, resume, projects),
        profile.max_tokens,
        profile.temperature,
        context=context,
        purpose=profile.purpose,
    )
    return result.text.strip(), result.context


async def analyze_resume_text(
    resume_text: str,
    context: SessionContext | None = None,
) -> tuple[ResumeAnalysis, SessionContext]:
    """Extract a structured summary from resume text using the document pool."""
    return await _run_json_task(
        TaskName.RESUME_ANALYSIS,
        resume_messages(resume_text),
        ResumeAnalysis,
        context,
    )


async def evaluate_code_solution(
    title: str,
    description: str,
    test_cases: Sequence[TestCase],
    code: str,
    language: str = "python",
    context: SessionContext | None = None,
) -> tuple[CodeEvaluation, SessionContext]:
    """
    Ask the model to review a candidate's solution.

    A reply without a score is scored 100 when is_correct is true and 0
    otherwise.
    """
    pairs = [(tc.input, tc.expected_output) for tc in test_cases]
    return await _run_json_task(
        TaskName.CODE_EVALUATION,
        code_review_messages(title, description, pairs, code, language),
        CodeEvaluation,
        context,
    )


def fallback_feedback(company: str, role: str, scores: RoundScores) -> FinalFeedback:
    """Basic feedback report built from the scores alone."""
    average = overall_score(scores.model_dump())
    return FinalFeedback(
        overall_score=average,
        performance_analysis=(
            f"You completed all three rounds of the {company} {role} interview "
            f"simulation with an average score of {average}%."
        ),
        strengths=["Completed all rounds", "Good overall performance"],
        areas_for_improvement=["Continue practicing", "Review weak areas"],
        company_specific_feedback=f"Your performance shows readiness for {company} interview process.",
        next_steps=["Practice more problems", "Review interview techniques"],
        confidence_rating=confidence_rating(average),
        degraded=True,
    )


async def generate_final_feedback(
    company: str,
    role: str,
    scores: RoundScores,
    context: SessionContext | None = None,
) -> tuple[FinalFeedback, SessionContext]:
    """
    Generate the final coaching report.

    Any dispatch or parse failure degrades to fallback_feedback() instead
    of raising.
    """
    context = context if context is not None else SessionContext()
    try:
        return await _run_json_task(
            TaskName.FINAL_FEEDBACK,
            feedback_messages(company, role, scores.model_dump()),
            FinalFeedback,
            context,
        )
    except DispatchError as e:
        logger.warning(f"Final feedback generation failed, using basic report: {e}")
        return fallback_feedback(company, role, scores), context

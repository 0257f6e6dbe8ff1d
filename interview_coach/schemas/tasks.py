"""
Pydantic Schemas for Task Results

Structured results parsed from model output for each interview-coach
task. Model output is only syntactically repaired, never guaranteed
complete, so every field has a default and nulls fall back to it. A
missing field degrades the result instead of failing the request.
"""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class LenientModel(BaseModel):
    """Base for model-produced payloads: unknown keys ignored, nulls defaulted."""

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        """Remove null values so field defaults apply."""
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return str(value)


# =============================================================================
# APTITUDE ROUND
# =============================================================================


class AptitudeQuestion(LenientModel):
    """A multiple choice aptitude question."""

    question: str = Field(default="", description="Question text")
    options: list[str] = Field(default_factory=list, description="Options labelled A) to D)")
    correct_answer: str = Field(default="", description="Letter of the correct option")
    explanation: str = Field(default="", description="Why the answer is correct")


class AptitudeQuestionSet(LenientModel):
    questions: list[AptitudeQuestion] = Field(default_factory=list)


# =============================================================================
# CODING ROUND
# =============================================================================


class TestCase(LenientModel):
    """Input and expected output for a coding problem."""

    __test__ = False  # not a pytest test class

    input: str = ""
    expected_output: str = ""

    @field_validator("input", "expected_output", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> str:
        """Models sometimes emit numbers or arrays for I/O examples."""
        return _as_text(v)


class CodingProblem(LenientModel):
    """A company-specific coding problem."""

    title: str = ""
    description: str = ""
    example_input: str = ""
    example_output: str = ""
    test_cases: list[TestCase] = Field(default_factory=list)
    difficulty: str = "Medium"
    tags: list[str] = Field(default_factory=list)

    @field_validator("example_input", "example_output", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> str:
        return _as_text(v)


class CodingProblemSet(LenientModel):
    problems: list[CodingProblem] = Field(default_factory=list)


class TestResult(LenientModel):
    """Outcome of one test case in a code evaluation."""

    __test__ = False  # not a pytest test class

    test_case: int = 0
    passed: bool = False
    expected: str = ""
    actual: str = ""
    explanation: str = ""

    @field_validator("expected", "actual", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> str:
        return _as_text(v)


class CodeEvaluation(LenientModel):
    """
    Model verdict on a submitted solution.

    A missing score is derived from is_correct (100 or 0).
    """

    is_correct: bool = False
    score: int | None = Field(default=None, ge=0, le=100)
    feedback: str = ""
    test_results: list[TestResult] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, v: Any) -> Any:
        """Clamp numeric scores into 0-100; leave anything else to validation."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return int(min(100, max(0, round(v))))
        return v

    @model_validator(mode="after")
    def default_score(self) -> "CodeEvaluation":
        if self.score is None:
            self.score = 100 if self.is_correct else 0
        return self


# =============================================================================
# RESUME ANALYSIS
# =============================================================================


class ResumeProject(LenientModel):
    title: str = ""
    technologies: list[str] = Field(default_factory=list)
    description: str = ""


class ResumeAnalysis(LenientModel):
    """Structured summary extracted from resume text."""

    summary: str = ""
    years_of_experience: float | None = Field(default=None, ge=0)
    skills: list[str] = Field(default_factory=list)
    roles: list[str] = Field(default_factory=list)
    companies: list[str] = Field(default_factory=list)
    education: list[str] = Field(default_factory=list)
    projects: list[ResumeProject] = Field(default_factory=list)


# =============================================================================
# FINAL FEEDBACK
# =============================================================================


class RoundScores(BaseModel):
    """Scores of the three rounds, each 0-100."""

    aptitude: int = Field(default=0, ge=0, le=100)
    coding: int = Field(default=0, ge=0, le=100)
    interview: int = Field(default=0, ge=0, le=100)


class FinalFeedback(LenientModel):
    """Final coaching report across all rounds."""

    overall_score: int = Field(default=0, ge=0, le=100)
    performance_analysis: str = ""
    strengths: list[str] = Field(default_factory=list)
    areas_for_improvement: list[str] = Field(default_factory=list)
    company_specific_feedback: str = ""
    next_steps: list[str] = Field(default_factory=list)
    confidence_rating: int = Field(default=1, ge=1, le=10)
    degraded: bool = Field(
        default=False,
        description="True when the report was built locally because the model failed",
    )

    @field_validator("overall_score", mode="before")
    @classmethod
    def clamp_overall(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return int(min(100, max(0, round(v))))
        return v

    @field_validator("confidence_rating", mode="before")
    @classmethod
    def clamp_rating(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return int(min(10, max(1, round(v))))
        return v

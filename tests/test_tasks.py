"""
Task Tests

Tests for prompt construction and the task generators, with provider
replies served by the fake server.
"""

import pytest

from interview_coach.dispatcher import ChatMessage, ResponseParseError, SessionContext
from interview_coach.schemas import CodeEvaluation, RoundScores, TestCase
from interview_coach.tasks import (
    TASK_PROFILES,
    InterviewStage,
    TaskName,
    analyze_resume_text,
    evaluate_code_solution,
    fallback_feedback,
    generate_aptitude_questions,
    generate_coding_problems,
    generate_final_feedback,
    generate_interview_reply,
    interview_stage,
)
from interview_coach.tasks.prompts import candidate_context, interview_messages

from fixtures import (
    APTITUDE_OUTPUT,
    FEEDBACK_OUTPUT,
    RESUME_OUTPUT,
    SAMPLE_RESUME,
    TRUNCATED_CODING_OUTPUT,
    FakeServer,
    gemini_error,
    gemini_reply,
)


def first_turn_text(request) -> str:
    return FakeServer.body(request)["contents"][0]["parts"][0]["text"]


def generation_config(request) -> dict:
    return FakeServer.body(request)["generationConfig"]


class TestTaskProfiles:
    """Generation settings per task."""

    @pytest.mark.parametrize(
        "task,max_tokens,temperature",
        [
            (TaskName.APTITUDE_QUESTIONS, 4000, 0.7),
            (TaskName.CODING_PROBLEMS, 3000, 0.7),
            (TaskName.INTERVIEW_REPLY, 500, 0.8),
            (TaskName.RESUME_ANALYSIS, 1200, 0.2),
            (TaskName.CODE_EVALUATION, 1000, 0.3),
            (TaskName.FINAL_FEEDBACK, 1500, 0.7),
        ],
    )
    def test_profiles(self, task, max_tokens, temperature):
        profile = TASK_PROFILES[task]

        assert profile.max_tokens == max_tokens
        assert profile.temperature == temperature


class TestInterviewPrompts:
    """Tests for the staged interviewer prompt."""

    @pytest.mark.parametrize(
        "history_length,stage",
        [
            (0, InterviewStage.INTRODUCTION),
            (2, InterviewStage.INTRODUCTION),
            (3, InterviewStage.BEHAVIORAL),
            (6, InterviewStage.BEHAVIORAL),
            (10, InterviewStage.TECHNICAL),
            (11, InterviewStage.COMPANY_ROLE),
        ],
    )
    def test_stage_from_history_length(self, history_length, stage):
        assert interview_stage(history_length) is stage

    def test_resume_withheld_during_introduction(self):
        text = candidate_context("Hi, I'm Jane", 2, resume="5 years Python", projects=["Bot"])

        assert text == "Hi, I'm Jane"

    def test_resume_added_after_introduction(self):
        text = candidate_context("I led a team", 4, resume="5 years Python", projects=["Bot", "CLI"])

        assert text.startswith("I led a team\n\nAdditional context about the candidate:")
        assert "Resume Summary: 5 years Python" in text
        assert "Projects: Bot, CLI" in text

    def test_messages_order(self):
        history = [ChatMessage.assistant("Tell me about yourself"), ChatMessage.user("I code")]

        messages = interview_messages("Google", "SRE", "Anything else?", history)

        assert messages[0].content.startswith("You are conducting a professional interview")
        assert "Current conversation stage: BASIC INTRODUCTION" in messages[0].content
        assert messages[1:3] == history
        assert messages[-1] == ChatMessage.user("Anything else?")


class TestGenerators:
    """Tests for the task generators."""

    @pytest.mark.asyncio
    async def test_aptitude_questions(self, fake_server: FakeServer, mock_backoff):
        fake_server.gemini = [gemini_reply(APTITUDE_OUTPUT)]

        questions, context = await generate_aptitude_questions("Google", "SRE")

        assert len(questions) == 2
        assert questions[0].correct_answer == "B"
        request = fake_server.gemini_calls[0]
        assert "exactly 25 multiple choice questions for Google SRE" in first_turn_text(request)
        assert generation_config(request) == {"maxOutputTokens": 4000, "temperature": 0.7}
        assert context.key_indexes == {"general": 0}

    @pytest.mark.asyncio
    async def test_coding_problems_from_truncated_output(
        self, fake_server: FakeServer, mock_backoff
    ):
        """A reply cut off mid-problem still yields the complete parts."""
        fake_server.gemini = [gemini_reply(TRUNCATED_CODING_OUTPUT)]

        problems, _ = await generate_coding_problems("Google", "SRE")

        assert problems[0].title == "Two Sum"
        assert problems[0].example_input == "[2, 7, 11, 15]"
        assert problems[0].test_cases[0].expected_output == "[0,1]"
        assert problems[1].title == "Valid Parentheses"
        assert problems[1].difficulty == "Medium"

    @pytest.mark.asyncio
    async def test_wrong_shape_is_parse_error(self, fake_server: FakeServer, mock_backoff):
        fake_server.gemini = [gemini_reply('{"questions": "none today"}')]

        with pytest.raises(ResponseParseError):
            await generate_aptitude_questions("Google", "SRE")

    @pytest.mark.asyncio
    async def test_interview_reply(self, fake_server: FakeServer, mock_backoff):
        fake_server.gemini = [gemini_reply("  What drew you to Google?  ")]
        history = [ChatMessage.assistant("Hello!"), ChatMessage.user("Hi")]

        reply, _ = await generate_interview_reply("Google", "SRE", "I'm ready", history)

        assert reply == "What drew you to Google?"
        body = FakeServer.body(fake_server.gemini_calls[0])
        assert [turn["role"] for turn in body["contents"]] == ["user", "model", "user", "user"]
        assert body["generationConfig"] == {"maxOutputTokens": 500, "temperature": 0.8}

    @pytest.mark.asyncio
    async def test_resume_analysis_uses_document_pool(
        self, configure_env, fake_server: FakeServer, mock_backoff
    ):
        configure_env(GEMINI_RESUME_KEYS="resume-key")
        fake_server.gemini = [gemini_reply(RESUME_OUTPUT)]

        analysis, context = await analyze_resume_text(SAMPLE_RESUME)

        assert analysis.skills == ["Python", "FastAPI", "PostgreSQL"]
        assert analysis.years_of_experience == 4
        assert analysis.projects[0].title == "Billing API"
        assert fake_server.keys_used() == ["resume-key"]
        assert "document" in context.key_indexes
        assert "Jane Doe" in first_turn_text(fake_server.gemini_calls[0])

    @pytest.mark.asyncio
    async def test_resume_nulls_default(self, fake_server: FakeServer, mock_backoff):
        """Unknown fields come back as null and fall back to defaults."""
        fake_server.gemini = [
            gemini_reply('{"summary": "x", "years_of_experience": null, "skills": null}')
        ]

        analysis, _ = await analyze_resume_text("some resume")

        assert analysis.years_of_experience is None
        assert analysis.skills == []

    @pytest.mark.asyncio
    async def test_code_evaluation(self, fake_server: FakeServer, mock_backoff):
        fake_server.gemini = [
            gemini_reply('{"is_correct": true, "score": 92, "feedback": "Nice", '
                         '"test_results": [{"test_case": 1, "passed": true, "expected": 3, "actual": 3}]}')
        ]

        evaluation, _ = await evaluate_code_solution(
            "Add",
            "Add two numbers",
            [TestCase(input="1 2", expected_output="3")],
            "def add(a, b):\n    return a + b",
        )

        assert evaluation.is_correct
        assert evaluation.score == 92
        assert evaluation.test_results[0].expected == "3"
        prompt = FakeServer.body(fake_server.gemini_calls[0])["contents"][0]["parts"][0]["text"]
        assert "Test 1: Input: 1 2 | Expected: 3" in prompt
        assert "```python\ndef add(a, b):" in prompt

    @pytest.mark.asyncio
    async def test_code_evaluation_missing_score(self, fake_server: FakeServer, mock_backoff):
        """A verdict without a score scores 100 when correct, 0 otherwise."""
        fake_server.gemini = [gemini_reply('{"is_correct": false, "feedback": "Off by one"}')]

        evaluation, _ = await evaluate_code_solution("Add", "", [], "pass")

        assert evaluation.score == 0
        assert CodeEvaluation.model_validate({"is_correct": True}).score == 100

    @pytest.mark.asyncio
    async def test_final_feedback(self, fake_server: FakeServer, mock_backoff):
        fake_server.gemini = [gemini_reply(FEEDBACK_OUTPUT)]
        scores = RoundScores(aptitude=80, coding=67, interview=72)

        feedback, _ = await generate_final_feedback("Google", "SRE", scores)

        assert feedback.overall_score == 73
        assert feedback.confidence_rating == 7
        assert not feedback.degraded
        assert "Overall Score: 73%" in first_turn_text(fake_server.gemini_calls[0])

    @pytest.mark.asyncio
    async def test_final_feedback_degrades_on_provider_failure(
        self, fake_server: FakeServer, mock_backoff
    ):
        """Provider failures produce the locally built report."""
        fake_server.gemini = [gemini_error(429, "quota exceeded")]
        scores = RoundScores(aptitude=90, coding=100, interview=80)
        context = SessionContext()

        feedback, returned = await generate_final_feedback("Google", "SRE", scores, context)

        assert feedback.degraded
        assert feedback.overall_score == 90
        assert feedback.confidence_rating == 9
        assert "Google SRE" in feedback.performance_analysis
        assert returned is context

    @pytest.mark.asyncio
    async def test_final_feedback_degrades_on_parse_failure(
        self, fake_server: FakeServer, mock_backoff
    ):
        fake_server.gemini = [gemini_reply("Great job overall!")]

        feedback, _ = await generate_final_feedback("Google", "SRE", RoundScores())

        assert feedback.degraded
        assert feedback.overall_score == 0
        assert feedback.confidence_rating == 1


class TestFallbackFeedback:
    def test_fallback_report(self):
        feedback = fallback_feedback("Meta", "SWE", RoundScores(aptitude=55, coding=60, interview=70))

        assert feedback.overall_score == 62
        assert feedback.confidence_rating == 6
        assert feedback.strengths == ["Completed all rounds", "Good overall performance"]
        assert feedback.company_specific_feedback == (
            "Your performance shows readiness for Meta interview process."
        )

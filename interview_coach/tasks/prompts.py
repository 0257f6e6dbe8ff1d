"""
Task Prompts and Profiles

This module defines each interview-coach task as a prompt plus a
generation profile:
- Aptitude questions (25 MCQs, creative)
- Coding problems (3 problems with test cases, creative)
- Interview reply (staged interviewer persona, conversational)
- Resume analysis (faithful extraction, document credential pool)
- Code evaluation (reviewer verdict, low temperature)
- Final feedback (coaching report over round scores)

Prompt builders return ChatMessage lists ready for dispatch().
"""

from collections.abc import Sequence
from enum import Enum

from pydantic import BaseModel, Field

from interview_coach.dispatcher import CallPurpose, ChatMessage
from interview_coach.scoring import overall_score


class TaskName(str, Enum):
    """Interview-coach tasks with their own generation profile."""

    APTITUDE_QUESTIONS = "aptitude_questions"
    CODING_PROBLEMS = "coding_problems"
    INTERVIEW_REPLY = "interview_reply"
    RESUME_ANALYSIS = "resume_analysis"
    CODE_EVALUATION = "code_evaluation"
    FINAL_FEEDBACK = "final_feedback"


class InterviewStage(str, Enum):
    """Mock interview stages, in the order they are conducted."""

    INTRODUCTION = "BASIC INTRODUCTION"
    BEHAVIORAL = "BEHAVIORAL QUESTIONS"
    TECHNICAL = "TECHNICAL QUESTIONS"
    COMPANY_ROLE = "COMPANY/ROLE SPECIFIC"


class TaskProfile(BaseModel):
    """Generation settings for one task."""

    name: TaskName
    max_tokens: int = Field(..., gt=0, description="Maximum output tokens")
    temperature: float = Field(..., ge=0.0, le=1.0, description="Sampling temperature")
    purpose: CallPurpose = Field(
        default=CallPurpose.GENERAL,
        description="Credential pool for direct calls",
    )


TASK_PROFILES: dict[TaskName, TaskProfile] = {
    TaskName.APTITUDE_QUESTIONS: TaskProfile(
        name=TaskName.APTITUDE_QUESTIONS, max_tokens=4000, temperature=0.7
    ),
    TaskName.CODING_PROBLEMS: TaskProfile(
        name=TaskName.CODING_PROBLEMS, max_tokens=3000, temperature=0.7
    ),
    TaskName.INTERVIEW_REPLY: TaskProfile(
        name=TaskName.INTERVIEW_REPLY, max_tokens=500, temperature=0.8
    ),
    TaskName.RESUME_ANALYSIS: TaskProfile(
        name=TaskName.RESUME_ANALYSIS,
        max_tokens=1200,
        temperature=0.2,
        purpose=CallPurpose.DOCUMENT,
    ),
    TaskName.CODE_EVALUATION: TaskProfile(
        name=TaskName.CODE_EVALUATION, max_tokens=1000, temperature=0.3
    ),
    TaskName.FINAL_FEEDBACK: TaskProfile(
        name=TaskName.FINAL_FEEDBACK, max_tokens=1500, temperature=0.7
    ),
}

APTITUDE_QUESTION_COUNT = 25
CODING_PROBLEM_COUNT = 3

# History lengths (in turns) at which the interview moves to the next stage
STAGE_LIMITS: tuple[tuple[int, InterviewStage], ...] = (
    (2, InterviewStage.INTRODUCTION),
    (6, InterviewStage.BEHAVIORAL),
    (10, InterviewStage.TECHNICAL),
)


APTITUDE_SYSTEM_PROMPT = """You are an expert in creating company-specific aptitude questions. \
Generate exactly {count} multiple choice questions for {company} {role} position. \
Each question should test logical reasoning, quantitative aptitude, and verbal ability relevant to the role."""

APTITUDE_USER_PROMPT = """Create {count} aptitude questions for a {role} position at {company}. \
Return them in this exact JSON format:
{{
  "questions": [
    {{
      "question": "Question text here",
      "options": ["A) Option 1", "B) Option 2", "C) Option 3", "D) Option 4"],
      "correct_answer": "A",
      "explanation": "Brief explanation of the answer"
    }}
  ]
}}"""

CODING_SYSTEM_PROMPT = """You are an expert in creating company-specific coding problems. \
Generate exactly {count} coding problems that {company} typically asks for {role} positions. \
Problems should be medium difficulty and include test cases."""

CODING_USER_PROMPT = """Create {count} coding problems for a {role} position at {company}. \
Return them in this exact JSON format:
{{
  "problems": [
    {{
      "title": "Problem title",
      "description": "Detailed problem description with constraints",
      "example_input": "Sample input",
      "example_output": "Expected output",
      "test_cases": [
        {{"input": "test input 1", "expected_output": "expected output 1"}},
        {{"input": "test input 2", "expected_output": "expected output 2"}}
      ],
      "difficulty": "Medium",
      "tags": ["array", "string"]
    }}
  ]
}}"""

INTERVIEWER_SYSTEM_PROMPT = """You are conducting a professional interview for a {role} position at {company}.

Interview Structure - Follow this order:
1. BASIC INTRODUCTION (Start here)
   - Ask about their background and experience
   - Why they're interested in this role/company
   - What they're looking for in their next position

2. BEHAVIORAL QUESTIONS
   - Ask about past experiences and achievements
   - How they handle challenges and teamwork
   - Leadership and communication examples

3. TECHNICAL QUESTIONS (Only after basics)
   - Ask about relevant technical skills
   - Problem-solving approaches
   - Experience with specific technologies

4. COMPANY/ROLE SPECIFIC
   - Questions about the role and company
   - How they would contribute to the team
   - Their questions for the interviewer

Guidelines:
- Start with basic, friendly questions
- Build rapport before diving into technical details
- Ask follow-up questions based on their responses
- Be conversational and encouraging
- Reference their resume/projects only after establishing basics
- Keep questions relevant to the {role} position at {company}

Current conversation stage: {stage}

Be natural, friendly, and professional. Ask one question at a time."""

RESUME_SYSTEM_PROMPT = """You are a precise resume parser. Extract structured data faithfully \
without inventing facts. If a field is unknown, use null or an empty list. \
Return ONLY valid JSON matching the schema."""

RESUME_USER_PROMPT = """Extract a structured summary from this resume text.
Return JSON with this exact shape:
{{
  "summary": string,
  "years_of_experience": number | null,
  "skills": string[],
  "roles": string[],
  "companies": string[],
  "education": string[],
  "projects": [
    {{ "title": string, "technologies": string[], "description": string }}
  ]
}}

Resume Text:
{resume}"""

CODE_REVIEW_SYSTEM_PROMPT = """You are an expert code reviewer and evaluator. Your job is to analyze \
code solutions and determine if they are correct based on the problem requirements and test cases.

Evaluation Criteria:
1. Does the code solve the problem correctly?
2. Does it handle all the test cases properly?
3. Is the logic sound and efficient?
4. Are there any obvious bugs or errors?

Return your evaluation in this exact JSON format:
{
  "is_correct": true/false,
  "score": number (0-100),
  "feedback": "Detailed feedback about the solution",
  "test_results": [
    {
      "test_case": 1,
      "passed": true/false,
      "expected": "expected output",
      "actual": "what the code would produce",
      "explanation": "Why it passed/failed"
    }
  ],
  "suggestions": ["suggestion1", "suggestion2", ...]
}"""

CODE_REVIEW_USER_PROMPT = """Problem: {title}
Description: {description}

Test Cases:
{test_cases}

User's {language} Code:
```{language}
{code}
```

Please evaluate this code solution and provide detailed feedback."""

COACH_SYSTEM_PROMPT = """You are an expert interview coach and HR professional. Provide detailed, \
constructive feedback that helps candidates improve their interview performance."""

FEEDBACK_USER_PROMPT = """As an expert interview coach and HR professional, analyze this candidate's \
performance in a {role} position interview at {company}.

Interview Results:
- Aptitude Round: {aptitude}% (Logical reasoning, quantitative aptitude)
- Coding Round: {coding}% (Programming challenges, problem-solving)
- AI Interview Round: {interview}% (Communication, technical discussion)
- Overall Score: {overall}%

Please provide a comprehensive analysis in the following JSON format:
{{
  "overall_score": {overall},
  "performance_analysis": "2-3 sentences analyzing overall performance and readiness for {company}",
  "strengths": ["3-4 specific strengths based on the scores"],
  "areas_for_improvement": ["3-4 specific areas to work on"],
  "company_specific_feedback": "Paragraph about readiness for {company} specifically and how they compare to typical candidates",
  "next_steps": ["4-5 specific, actionable recommendations for improvement"],
  "confidence_rating": (number from 1-10 representing interview readiness)
}}

Make the feedback personalized, constructive, and actionable. Consider {company}'s known interview \
style and requirements for {role} positions."""


def aptitude_messages(company: str, role: str) -> list[ChatMessage]:
    params = {"company": company, "role": role, "count": APTITUDE_QUESTION_COUNT}
    return [
        ChatMessage.system(APTITUDE_SYSTEM_PROMPT.format(**params)),
        ChatMessage.user(APTITUDE_USER_PROMPT.format(**params)),
    ]


def coding_messages(company: str, role: str) -> list[ChatMessage]:
    params = {"company": company, "role": role, "count": CODING_PROBLEM_COUNT}
    return [
        ChatMessage.system(CODING_SYSTEM_PROMPT.format(**params)),
        ChatMessage.user(CODING_USER_PROMPT.format(**params)),
    ]


def interview_stage(history_length: int) -> InterviewStage:
    """Stage of the interview given the number of earlier turns."""
    for limit, stage in STAGE_LIMITS:
        if history_length <= limit:
            return stage
    return InterviewStage.COMPANY_ROLE


def candidate_context(
    message: str,
    history_length: int,
    resume: str | None = None,
    projects: Sequence[str] = (),
) -> str:
    """
    The candidate's message, with resume and projects appended once the
    introduction stage is over.
    """
    if interview_stage(history_length) is InterviewStage.INTRODUCTION or not (resume or projects):
        return message

    lines = ["", "", "Additional context about the candidate:"]
    if resume:
        lines.append(f"Resume Summary: {resume}")
    if projects:
        lines.append(f"Projects: {', '.join(projects)}")
    lines.append("")
    lines.append(
        "Use this information to ask more specific questions about their experience and projects."
    )
    return message + "\n".join(lines)


def interview_messages(
    company: str,
    role: str,
    message: str,
    history: Sequence[ChatMessage] = (),
    resume: str | None = None,
    projects: Sequence[str] = (),
) -> list[ChatMessage]:
    """System persona, then the earlier turns, then the candidate's message."""
    stage = interview_stage(len(history))
    system = INTERVIEWER_SYSTEM_PROMPT.format(company=company, role=role, stage=stage.value)
    return [
        ChatMessage.system(system),
        *history,
        ChatMessage.user(candidate_context(message, len(history), resume, projects)),
    ]


def resume_messages(resume_text: str) -> list[ChatMessage]:
    return [
        ChatMessage.system(RESUME_SYSTEM_PROMPT),
        ChatMessage.user(RESUME_USER_PROMPT.format(resume=resume_text)),
    ]


def format_test_cases(test_cases: Sequence[tuple[str, str]]) -> str:
    """One "Test i: Input: ... | Expected: ..." line per (input, expected) pair."""
    return "\n".join(
        f"Test {i}: Input: {given} | Expected: {expected}"
        for i, (given, expected) in enumerate(test_cases, start=1)
    )


def code_review_messages(
    title: str,
    description: str,
    test_cases: Sequence[tuple[str, str]],
    code: str,
    language: str = "python",
) -> list[ChatMessage]:
    user = CODE_REVIEW_USER_PROMPT.format(
        title=title,
        description=description,
        test_cases=format_test_cases(test_cases),
        language=language,
        code=code,
    )
    return [ChatMessage.system(CODE_REVIEW_SYSTEM_PROMPT), ChatMessage.user(user)]


def feedback_messages(company: str, role: str, scores: dict[str, int]) -> list[ChatMessage]:
    user = FEEDBACK_USER_PROMPT.format(
        company=company,
        role=role,
        aptitude=scores.get("aptitude", 0),
        coding=scores.get("coding", 0),
        interview=scores.get("interview", 0),
        overall=overall_score(scores),
    )
    return [ChatMessage.system(COACH_SYSTEM_PROMPT), ChatMessage.user(user)]

"""
Tasks module: interview-coach operations built on the dispatcher.

Key exports:
- generate_aptitude_questions(): 25 MCQs for a company and role
- generate_coding_problems(): 3 coding problems with test cases
- generate_interview_reply(): Staged mock-interviewer reply
- analyze_resume_text(): Structured resume summary (document key pool)
- evaluate_code_solution(): Model review of a candidate's code
- generate_final_feedback(): Coaching report, with a local fallback
"""

from interview_coach.tasks.generators import (
    analyze_resume_text,
    evaluate_code_solution,
    fallback_feedback,
    generate_aptitude_questions,
    generate_coding_problems,
    generate_final_feedback,
    generate_interview_reply,
)
from interview_coach.tasks.prompts import (
    TASK_PROFILES,
    InterviewStage,
    TaskName,
    TaskProfile,
    interview_stage,
)

__all__ = [
    "TaskName",
    "TaskProfile",
    "TASK_PROFILES",
    "InterviewStage",
    "interview_stage",
    "generate_aptitude_questions",
    "generate_coding_problems",
    "generate_interview_reply",
    "analyze_resume_text",
    "evaluate_code_solution",
    "generate_final_feedback",
    "fallback_feedback",
]

"""
Test Fixtures

Shared test data and fake provider responses for the Interview Coach
test suite.
"""

import json

import httpx
from unittest.mock import AsyncMock

PROXY_URL = "https://coach.test/api/gemini"


def gemini_reply(text: str) -> httpx.Response:
    """A successful generateContent response carrying `text`."""
    return httpx.Response(
        200,
        json={"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]},
    )


def gemini_error(status: int, message: str, code: str | None = None) -> httpx.Response:
    """A Gemini-style error body."""
    error = {"code": status, "message": message}
    if code:
        error["status"] = code
    return httpx.Response(status, json={"error": error})


def proxy_reply(text: str) -> httpx.Response:
    return httpx.Response(200, json={"text": text})


def proxy_error(status: int, message: str = "proxy failure") -> httpx.Response:
    return httpx.Response(status, json={"error": message})


class FakeServer:
    """
    Scripted stand-in for the proxy and the Gemini API.

    Each host gets a queue of responses (or exceptions) served in order;
    the last entry repeats once the queue runs out. Every request is
    recorded for assertions.
    """

    def __init__(self):
        self.proxy: list = []
        self.gemini: list = []
        self.requests: list[httpx.Request] = []

    def _next(self, queue: list):
        if not queue:
            raise AssertionError("No scripted response left")
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "coach.test":
            item = self._next(self.proxy)
        else:
            item = self._next(self.gemini)
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def proxy_calls(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == "coach.test"]

    @property
    def gemini_calls(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host != "coach.test"]

    def keys_used(self) -> list[str]:
        return [r.headers["x-goog-api-key"] for r in self.gemini_calls]

    @staticmethod
    def body(request: httpx.Request) -> dict:
        return json.loads(request.content)


def waits(mocked_backoff: AsyncMock) -> list[float]:
    """Wait times passed to a patched backoff, in call order."""
    return [call.args[0] for call in mocked_backoff.await_args_list]


# Sample model outputs, as returned inside candidate text

APTITUDE_OUTPUT = """```json
{
  "questions": [
    {
      "question": "What is 15% of 200?",
      "options": ["A) 20", "B) 30", "C) 35", "D) 40"],
      "correct_answer": "B",
      "explanation": "0.15 * 200 = 30"
    },
    {
      "question": "Find the odd one out: 2, 3, 5, 9, 11",
      "options": ["A) 2", "B) 3", "C) 9", "D) 11"],
      "correct_answer": "C",
      "explanation": "9 is not prime"
    }
  ]
}
```"""

# Cut off by the token limit in the middle of the second problem
TRUNCATED_CODING_OUTPUT = """{
  "problems": [
    {
      "title": "Two Sum",
      "description": "Return indices of two numbers adding up to target.",
      "example_input": [2, 7, 11, 15],
      "example_output": "[0, 1]",
      "test_cases": [{"input": "[2,7,11,15], 9", "expected_output": "[0,1]"}],
      "difficulty": "Easy",
      "tags": ["array", "hash-map"]
    },
    {
      "title": "Valid Parentheses",
      "description": "Determine if the brack"""

RESUME_OUTPUT = """{
  "summary": "Backend engineer focused on Python services.",
  "years_of_experience": 4,
  "skills": ["Python", "FastAPI", "PostgreSQL"],
  "roles": ["Backend Engineer"],
  "companies": ["Acme"],
  "education": ["BSc Computer Science"],
  "projects": [
    {"title": "Billing API", "technologies": ["FastAPI"], "description": "Invoices"}
  ]
}"""

FEEDBACK_OUTPUT = """{
  "overall_score": 73,
  "performance_analysis": "Solid fundamentals with room to grow.",
  "strengths": ["Clear communication", "Good aptitude"],
  "areas_for_improvement": ["Dynamic programming"],
  "company_specific_feedback": "Close to the bar for Google.",
  "next_steps": ["Practice graph problems"],
  "confidence_rating": 7
}"""

SAMPLE_RESUME = """Jane Doe
Backend Engineer at Acme (2020-2024)
Skills: Python, FastAPI, PostgreSQL
Education: BSc Computer Science"""

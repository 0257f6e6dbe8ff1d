"""
Round Scoring

Simple ratio-based scores for the three interview rounds, plus the
overall score, confidence rating and badge used in the final report.
All scores are integers on a 0-100 scale.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass


@dataclass(frozen=True)
class ScoreBadge:
    """Display label for a score band."""

    label: str
    min_score: int


SCORE_BADGES: tuple[ScoreBadge, ...] = (
    ScoreBadge("Excellent", 90),
    ScoreBadge("Very Good", 80),
    ScoreBadge("Good", 70),
    ScoreBadge("Fair", 60),
    ScoreBadge("Needs Improvement", 0),
)


def _round_half_up(value: float) -> int:
    # round() uses banker's rounding; scores round .5 upward
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def ratio_score(correct: int, total: int) -> int:
    """Percentage of correct items, 0 when there are no items."""
    if total <= 0:
        return 0
    return _round_half_up(correct / total * 100)


def _answer_letter(answer: str | None) -> str:
    """Reduce "B) Paris", "b" or "B." to "B"."""
    if not answer:
        return ""
    return answer.strip()[:1].upper()


def aptitude_score(
    correct_answers: Sequence[str],
    selected_answers: Mapping[int, str],
) -> int:
    """
    Score the aptitude round.

    Args:
        correct_answers: Correct option letter per question, in order.
        selected_answers: Chosen option per question index; unanswered
            questions are simply absent.

    Returns:
        Percentage of questions answered correctly.
    """
    correct = sum(
        1
        for index, expected in enumerate(correct_answers)
        if _answer_letter(selected_answers.get(index)) == _answer_letter(expected)
        and _answer_letter(expected)
    )
    return ratio_score(correct, len(correct_answers))


def coding_score(results: Sequence[bool]) -> int:
    """Percentage of coding problems whose evaluation passed."""
    return ratio_score(sum(1 for passed in results if passed), len(results))


def interview_score(user_replies: Sequence[str]) -> int:
    """
    Engagement score for the interview round.

    More replies and longer replies score higher:
    replies * 10 + average words per reply * 2, clamped to [50, 100].
    """
    total_words = sum(len(reply.split(" ")) for reply in user_replies)
    avg_words = total_words / max(len(user_replies), 1)
    raw = len(user_replies) * 10 + avg_words * 2
    return _round_half_up(min(100.0, max(50.0, raw)))


def overall_score(scores: Mapping[str, int | float]) -> int:
    """Rounded mean of the aptitude, coding and interview scores."""
    total = sum(float(scores.get(name, 0) or 0) for name in ("aptitude", "coding", "interview"))
    return _round_half_up(total / 3)


def confidence_rating(overall: int | float) -> int:
    """Interview readiness from 1 to 10."""
    return min(10, max(1, _round_half_up(overall / 10)))


def score_badge(score: int | float) -> str:
    """Label for the band a score falls in."""
    for badge in SCORE_BADGES:
        if score >= badge.min_score:
            return badge.label
    return SCORE_BADGES[-1].label

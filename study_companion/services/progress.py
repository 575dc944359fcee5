from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from study_companion.models.schemas import TopicProgress


def overall_progress(topics: Iterable[TopicProgress]) -> int:
    """Rounded mean progress across topics, 0 when there are none"""
    values = [t.progress for t in topics]
    if not values:
        return 0
    return round(sum(values) / len(values))


def _parse_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def time_remaining(exam_date_time: str, now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Break the time left until the exam into days, hours, minutes and seconds.

    Naive datetimes are taken as UTC. Past exams report all zeros.
    """
    target = _parse_datetime(exam_date_time)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    diff = max(0, int((target - now).total_seconds()))
    days, rest = divmod(diff, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)
    return {"days": days, "hours": hours, "minutes": minutes, "seconds": seconds}


def score_quiz(questions: List[Dict[str, Any]], answers: Mapping[str, Optional[int]]) -> Dict[str, int]:
    """Score answers keyed by question id against each question's correctOption"""
    total = len(questions)
    correct = sum(
        1 for q in questions
        if q.get("id") is not None and answers.get(str(q["id"])) == q.get("correctOption")
    )
    score = round(correct / total * 100) if total else 0
    return {"score": score, "correct_answers": correct, "total_questions": total}


def performance_feedback(score: int) -> str:
    if score >= 90:
        return "Excellent! You've mastered this topic."
    elif score >= 70:
        return "Great job! You're on the right track."
    elif score >= 50:
        return "Good effort! Keep studying to improve."
    return "Keep practicing. You'll get better with more study."

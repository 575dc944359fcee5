"""Tests for dashboard and quiz scoring computations."""

from datetime import datetime, timedelta, timezone

import pytest

from study_companion.models.schemas import TopicProgress
from study_companion.services.progress import (
    overall_progress,
    performance_feedback,
    score_quiz,
    time_remaining,
)

NOW = datetime(2030, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestOverallProgress:

    def test_empty_is_zero(self):
        assert overall_progress([]) == 0

    def test_rounded_mean(self):
        topics = [
            TopicProgress(name="a", progress=10),
            TopicProgress(name="b", progress=20),
            TopicProgress(name="c", progress=25),
        ]

        assert overall_progress(topics) == 18


class TestTimeRemaining:

    def test_breaks_down_components(self):
        target = NOW + timedelta(days=2, hours=3, minutes=4, seconds=5)

        assert time_remaining(target.isoformat(), now=NOW) == {
            "days": 2, "hours": 3, "minutes": 4, "seconds": 5,
        }

    def test_past_exam_is_zero(self):
        assert time_remaining("2029-12-31T00:00:00Z", now=NOW) == {
            "days": 0, "hours": 0, "minutes": 0, "seconds": 0,
        }

    def test_naive_datetime_is_utc(self):
        assert time_remaining("2030-01-01T13:00:00", now=NOW)["hours"] == 1

    def test_invalid_date_raises(self):
        with pytest.raises(ValueError):
            time_remaining("next tuesday", now=NOW)


class TestScoreQuiz:

    QUESTIONS = [
        {"id": "q1", "question": "a", "options": ["1", "2", "3", "4"], "correctOption": 0},
        {"id": "q2", "question": "b", "options": ["1", "2", "3", "4"], "correctOption": 1},
        {"id": "q3", "question": "c", "options": ["1", "2", "3", "4"], "correctOption": 2},
    ]

    def test_all_correct(self):
        result = score_quiz(self.QUESTIONS, {"q1": 0, "q2": 1, "q3": 2})

        assert result == {"score": 100, "correct_answers": 3, "total_questions": 3}

    def test_partial_score_is_rounded(self):
        result = score_quiz(self.QUESTIONS, {"q1": 0, "q2": 1, "q3": 0})

        assert result["score"] == 67
        assert result["correct_answers"] == 2

    def test_no_questions(self):
        assert score_quiz([], {})["score"] == 0

    def test_non_string_ids_match_string_answer_keys(self):
        questions = [
            {"id": 1, "question": "a", "options": ["1", "2", "3", "4"], "correctOption": 0},
            {"id": 2, "question": "b", "options": ["1", "2", "3", "4"], "correctOption": 3},
        ]

        result = score_quiz(questions, {"1": 0, "2": 3})

        assert result["score"] == 100
        assert result["correct_answers"] == 2


class TestPerformanceFeedback:

    @pytest.mark.parametrize(
        "score,expected",
        [
            (95, "Excellent! You've mastered this topic."),
            (90, "Excellent! You've mastered this topic."),
            (70, "Great job! You're on the right track."),
            (50, "Good effort! Keep studying to improve."),
            (10, "Keep practicing. You'll get better with more study."),
        ],
    )
    def test_bands(self, score, expected):
        assert performance_feedback(score) == expected

"""Study Companion API: Gemini-backed study plans, notes, explanations and quizzes."""

__version__ = "1.0.0"

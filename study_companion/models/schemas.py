import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def generate_id() -> str:
    return str(uuid.uuid4())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class StudyPlan(CamelModel):
    subject: str = Field(..., min_length=1)
    topics: List[str]
    exam_date_time: str = Field(..., alias="examDateTime")


class TopicProgress(CamelModel):
    id: str = Field(default_factory=generate_id)
    name: str
    progress: int = Field(default=0, ge=0, le=100)


class Note(CamelModel):
    id: str = Field(default_factory=generate_id)
    topic: str
    content: str
    created_at: str = Field(default_factory=utc_now_iso, alias="createdAt")


class QuizResult(CamelModel):
    topic: str
    score: int = Field(..., ge=0, le=100)
    date: str = Field(default_factory=utc_now_iso)


# Request bodies. Generation fields are optional so the handlers can report
# a missing field as 400 after the credential check, matching the error contract.

class StudyPlanRequest(CamelModel):
    subject: Optional[str] = None
    topics: Optional[List[str]] = None
    exam_date_time: Optional[str] = Field(default=None, alias="examDateTime")

    @field_validator("topics", mode="before")
    @classmethod
    def split_topics(cls, v: Any) -> Any:
        """Accept the comma separated form the study plan page submits"""
        if isinstance(v, str):
            return [t.strip() for t in v.split(",") if t.strip()]
        return v


class NotesRequest(CamelModel):
    topic: Optional[str] = None
    detail_level: Optional[str] = Field(default=None, alias="detailLevel")
    format: Optional[str] = None


class ExplanationRequest(CamelModel):
    topic: Optional[str] = None


class QuizRequest(CamelModel):
    topic: Optional[str] = None
    difficulty: Optional[str] = None
    num_questions: Optional[int] = Field(default=None, ge=0, le=50, alias="numQuestions")


class ProgressUpdateRequest(CamelModel):
    progress: int = Field(..., ge=0, le=100)


class NoteCreateRequest(CamelModel):
    id: Optional[str] = None
    topic: str = Field(..., min_length=1)
    content: str
    created_at: Optional[str] = Field(default=None, alias="createdAt")


class QuizSubmissionRequest(CamelModel):
    topic: str = Field(..., min_length=1)
    questions: List[Dict[str, Any]]
    answers: Dict[str, Optional[int]]


class QuizSubmissionResponse(CamelModel):
    topic: str
    score: int
    correct_answers: int = Field(..., alias="correctAnswers")
    total_questions: int = Field(..., alias="totalQuestions")
    progress_updated: bool = Field(..., alias="progressUpdated")
    performance_feedback: str = Field(..., alias="performanceFeedback")


class TimeRemaining(BaseModel):
    days: int
    hours: int
    minutes: int
    seconds: int


class DashboardResponse(CamelModel):
    study_plan: Optional[StudyPlan] = Field(default=None, alias="studyPlan")
    topics: List[TopicProgress]
    overall_progress: int = Field(..., alias="overallProgress")
    time_remaining: Optional[TimeRemaining] = Field(default=None, alias="timeRemaining")
    quiz_results: List[QuizResult] = Field(..., alias="quizResults")


class ArchivedStudyPlan(CamelModel):
    id: int
    subject: str
    topics: List[str]
    exam_date_time: str = Field(..., alias="examDateTime")
    content: str
    created_at: str = Field(..., alias="createdAt")

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from study_companion import __version__
from study_companion.config import Settings, get_settings
from study_companion.logging_config import configure_logging, configure_sentry
from study_companion.models.schemas import (
    ArchivedStudyPlan,
    DashboardResponse,
    ExplanationRequest,
    Note,
    NoteCreateRequest,
    NotesRequest,
    ProgressUpdateRequest,
    QuizRequest,
    QuizResult,
    QuizSubmissionRequest,
    QuizSubmissionResponse,
    StudyPlan,
    StudyPlanRequest,
    TopicProgress,
)
from study_companion.services.database_service import DatabaseService
from study_companion.services.llm_service import GenerationError, LLMService
from study_companion.services.progress import (
    overall_progress,
    performance_feedback,
    score_quiz,
    time_remaining,
)
from study_companion.services.storage_backend import create_storage_backend
from study_companion.services.study_plan_repository import StudyPlanRepository
from study_companion.services.study_storage import StudyStorage

logger = structlog.get_logger(__name__)

API_KEY_MISSING_MESSAGE = (
    "Gemini API key is not configured. Please set a valid GEMINI_API_KEY in the environment variables."
)
MISSING_FIELDS_MESSAGE = "Missing required information"


def _error(status_code: int, message: str, error: Optional[str] = None) -> HTTPException:
    detail: Dict[str, Any] = {"message": message}
    if error is not None:
        detail["error"] = error
    return HTTPException(status_code=status_code, detail=detail)


# Dependencies

def get_llm_service(request: Request) -> LLMService:
    llm_service = request.app.state.llm_service
    if llm_service is None:
        raise _error(503, API_KEY_MISSING_MESSAGE)
    return llm_service


def get_storage(request: Request) -> StudyStorage:
    return request.app.state.storage


def get_repository(request: Request) -> StudyPlanRepository:
    return request.app.state.study_plan_repository


router = APIRouter()


@router.get("/")
async def root():
    return {"message": "Study Companion API", "version": __version__}


# Generation endpoints

@router.post("/api/study-plan")
def generate_study_plan(
    body: StudyPlanRequest,
    llm_service: LLMService = Depends(get_llm_service),
    storage: StudyStorage = Depends(get_storage),
    repository: StudyPlanRepository = Depends(get_repository),
):
    """Generate a study plan, archive it, and make it the active plan"""
    if not body.subject or not isinstance(body.topics, list) or not body.exam_date_time:
        raise _error(400, MISSING_FIELDS_MESSAGE)

    try:
        plan_text = llm_service.generate_study_plan(body.subject, body.topics, body.exam_date_time)
        repository.save_study_plan(
            subject=body.subject,
            topics=body.topics,
            exam_date_time=body.exam_date_time,
            content=plan_text,
        )
        storage.save_study_plan(
            StudyPlan(subject=body.subject, topics=body.topics, exam_date_time=body.exam_date_time)
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error generating study plan: {e}")
        raise _error(500, "Failed to generate study plan", str(e))

    return {"message": "Study plan generated successfully", "plan": plan_text}


@router.post("/api/notes")
def generate_notes(body: NotesRequest, llm_service: LLMService = Depends(get_llm_service)):
    if not body.topic or not body.detail_level or not body.format:
        raise _error(400, MISSING_FIELDS_MESSAGE)

    try:
        content = llm_service.generate_notes(body.topic, body.detail_level, body.format)
    except GenerationError as e:
        logger.error(f"Error generating notes: {e}")
        raise _error(500, "Failed to generate notes", str(e))

    return {"message": "Notes generated successfully", "content": content}


@router.post("/api/explanation")
def generate_explanation(body: ExplanationRequest, llm_service: LLMService = Depends(get_llm_service)):
    if not body.topic:
        raise _error(400, "Missing topic")

    try:
        content = llm_service.generate_explanation(body.topic)
    except GenerationError as e:
        logger.error(f"Error generating explanation: {e}")
        raise _error(500, "Failed to generate explanation", str(e))

    return {"message": "Explanation generated successfully", "content": content}


@router.post("/api/quiz")
def generate_quiz(body: QuizRequest, llm_service: LLMService = Depends(get_llm_service)):
    """
    Generate multiple-choice questions for a topic.

    Malformed model output never fails the request: recovery falls back to a
    placeholder question. Individual questions are returned as parsed.
    """
    if not body.topic or not body.difficulty or not body.num_questions:
        raise _error(400, MISSING_FIELDS_MESSAGE)

    try:
        questions = llm_service.generate_quiz(body.topic, body.difficulty, body.num_questions)
    except GenerationError as e:
        logger.error(f"Error generating quiz: {e}")
        raise _error(500, "Failed to generate quiz", str(e))

    return {"questions": questions}


@router.post("/api/quiz/submit", response_model=QuizSubmissionResponse)
def submit_quiz(body: QuizSubmissionRequest, storage: StudyStorage = Depends(get_storage)):
    """Score a completed quiz, store the result and raise topic progress"""
    unanswered = sum(1 for q in body.questions if body.answers.get(str(q.get("id"))) is None)
    if unanswered > 0:
        raise _error(
            400,
            f"You have {unanswered} unanswered question(s). "
            "Please answer all questions before submitting."
        )

    result = score_quiz(body.questions, body.answers)
    progress_updated = storage.record_quiz_score(body.topic, result["score"])
    return QuizSubmissionResponse(
        topic=body.topic,
        score=result["score"],
        correct_answers=result["correct_answers"],
        total_questions=result["total_questions"],
        progress_updated=progress_updated,
        performance_feedback=performance_feedback(result["score"]),
    )


# Study data endpoints

@router.get("/api/storage/plan", response_model=StudyPlan)
def get_stored_plan(storage: StudyStorage = Depends(get_storage)):
    plan = storage.get_study_plan()
    if plan is None:
        raise _error(404, "No study plan found")
    return plan


@router.put("/api/storage/plan", response_model=List[TopicProgress])
def save_stored_plan(plan: StudyPlan, storage: StudyStorage = Depends(get_storage)):
    return storage.save_study_plan(plan)


@router.get("/api/storage/progress", response_model=List[TopicProgress])
def get_progress(storage: StudyStorage = Depends(get_storage)):
    return storage.get_topics_progress()


@router.put("/api/storage/progress/{topic_id}", response_model=TopicProgress)
def update_progress(topic_id: str, body: ProgressUpdateRequest, storage: StudyStorage = Depends(get_storage)):
    topic = storage.update_topic_progress(topic_id, body.progress)
    if topic is None:
        raise _error(404, "Topic not found")
    return topic


@router.get("/api/storage/notes", response_model=List[Note])
def get_notes(storage: StudyStorage = Depends(get_storage)):
    return storage.get_saved_notes()


@router.post("/api/storage/notes", response_model=Note, status_code=201)
def save_note(body: NoteCreateRequest, storage: StudyStorage = Depends(get_storage)):
    fields = body.model_dump(exclude_none=True)
    return storage.save_note(Note(**fields))


@router.delete("/api/storage/notes/{note_id}", status_code=204)
def delete_note(note_id: str, storage: StudyStorage = Depends(get_storage)):
    if not storage.delete_note(note_id):
        raise _error(404, "Note not found")


@router.get("/api/storage/quiz-results", response_model=List[QuizResult])
def get_quiz_results(storage: StudyStorage = Depends(get_storage)):
    return storage.get_quiz_results()


@router.delete("/api/storage", status_code=204)
def clear_storage(storage: StudyStorage = Depends(get_storage)):
    storage.clear_all_data()


@router.get("/api/dashboard", response_model=DashboardResponse)
def get_dashboard(storage: StudyStorage = Depends(get_storage)):
    plan = storage.get_study_plan()
    topics = storage.get_topics_progress() if plan else []
    remaining = None
    if plan:
        try:
            remaining = time_remaining(plan.exam_date_time)
        except ValueError:
            logger.warning(f"Unparseable exam date on stored plan: {plan.exam_date_time}")
    return DashboardResponse(
        study_plan=plan,
        topics=topics,
        overall_progress=overall_progress(topics),
        time_remaining=remaining,
        quiz_results=storage.get_quiz_results(),
    )


@router.get("/api/study-plans/{subject}", response_model=ArchivedStudyPlan)
def get_archived_plan(subject: str, repository: StudyPlanRepository = Depends(get_repository)):
    record = repository.get_study_plan(subject)
    if record is None:
        raise _error(404, "Study plan not found")
    return record


@router.get("/health")
def health_check(request: Request):
    """
    Health check endpoint for service monitoring
    """
    storage_status = request.app.state.storage.backend.status()
    database_status = request.app.state.database.get_connection_info()
    llm_status = "configured" if request.app.state.llm_service else "not_configured"

    healthy = storage_status.get("status") == "connected" and database_status.get("status") == "connected"
    return {
        "status": "healthy" if healthy and request.app.state.llm_service else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "storage": storage_status,
            "database": database_status,
            "llm": {"status": llm_status},
        },
        "version": __version__,
    }


# Exception handlers

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {"message": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


async def internal_server_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"message": "Internal server error", "error": str(exc)})


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    error = f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg", "invalid request")
    return JSONResponse(status_code=400, content={"message": MISSING_FIELDS_MESSAGE, "error": error})


def create_app(
    settings: Optional[Settings] = None,
    llm_service: Optional[LLMService] = None,
    storage: Optional[StudyStorage] = None,
    database: Optional[DatabaseService] = None,
) -> FastAPI:
    """
    Build the application with its collaborators.

    Anything not passed in is constructed from ``settings``. A missing
    Gemini key leaves ``llm_service`` unset and generation endpoints answer 503.
    """
    settings = settings or get_settings()
    configure_logging(settings)
    configure_sentry(settings)

    if llm_service is None:
        llm_service = LLMService.from_settings(settings)
    if storage is None:
        storage = StudyStorage(create_storage_backend(settings.storage_backend, settings.redis_url))
    if database is None:
        database = DatabaseService(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        database.dispose()

    app = FastAPI(
        title="Study Companion API",
        description="Study plans, notes, explanations and quizzes generated with Gemini",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.llm_service = llm_service
    app.state.storage = storage
    app.state.database = database
    app.state.study_plan_repository = StudyPlanRepository(database.get_engine())

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, internal_server_error_handler)
    app.include_router(router)
    return app


def run():
    import uvicorn
    uvicorn.run("study_companion.main:create_app", factory=True, host="0.0.0.0", port=8002)


if __name__ == "__main__":
    run()

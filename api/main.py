from fastapi import FastAPI, HTTPException, Depends, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from contextlib import asynccontextmanager
import hmac
import hashlib
import time

from core.config import settings
from core.exceptions import PracticeError, SessionNotFound
from core.logger import setup_logging, logger
from db.session import engine, get_db, get_redis
from models.enums import Mode
from services.session_service import SessionService, session_view
from services.progress_service import ProgressService
from services.taxonomy_service import TaxonomyService
from services.user_service import UserService

# API Documentation
API_DESCRIPTION = """
## Practice Engine API

Adaptive practice sessions for exam preparation. Each session picks a set of
questions around the student's current skill, and the submitted answers feed
back into the skill and level tracked per branch, subject and topic.

### Authentication

Session and progress endpoints require a signed token; the taxonomy is public:

- Header: `X-Auth-Token: <user>:<timestamp>:<signature>`

The signature is `HMAC_SHA256(AUTH_SECRET, "<user>:<timestamp>")` in hex.
Tokens expire after `TOKEN_TTL_SECONDS`.
"""

TAGS_METADATA = [
    {
        "name": "sessions",
        "description": "Practice session lifecycle - create, submit, review.",
    },
    {
        "name": "progress",
        "description": "Per-scope skill and level of the authenticated student.",
    },
    {
        "name": "taxonomy",
        "description": "Public branch, subject and topic tree.",
    },
    {
        "name": "info",
        "description": "Public information endpoints.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Practice engine API started", env=settings.ENV)
    yield
    await engine.dispose()


app = FastAPI(
    lifespan=lifespan,
    title="Practice Engine API",
    description=API_DESCRIPTION,
    version="1.0.0",
    openapi_tags=TAGS_METADATA,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PracticeError)
async def practice_error_handler(request: Request, exc: PracticeError):
    if exc.status_code >= 500:
        logger.error("Practice request failed", path=request.url.path, error=exc.code, **exc.context)
    else:
        logger.info("Practice request rejected", path=request.url.path, error=exc.code)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.code, "detail": exc.message})


# === Pydantic Models with Documentation ===

class SessionCreate(BaseModel):
    """Request body for starting a practice session."""
    mode: Mode = Field(..., description="Scope of the session: all, subject or topic")
    branch_id: int = Field(..., description="Exam branch to practice")
    subject_id: Optional[int] = Field(None, description="Required for subject and topic modes")
    topic_id: Optional[int] = Field(None, description="Required for topic mode")

    model_config = {
        "json_schema_extra": {
            "example": {"mode": "subject", "branch_id": 1, "subject_id": 3}
        }
    }


class ResponseItem(BaseModel):
    """A single answer given during a session."""
    question_id: int = Field(..., description="Question from the session snapshot")
    selected_index: int = Field(..., description="Index of the chosen option (0-based)", ge=0)
    time_sec: float = Field(..., description="Seconds spent on the question", ge=0)


class SessionSubmit(BaseModel):
    """Request body for submitting a session."""
    responses: List[ResponseItem] = Field(..., description="Answers given, at least one")


class QuestionItem(BaseModel):
    """Question as shown to the student. `correct_index` only after completion."""
    question_id: int
    stem: str
    options: List[str]
    difficulty: float
    correct_index: Optional[int] = None


class GradedResponse(BaseModel):
    question_id: int
    selected_index: int
    correct: bool
    time_sec: float


class SessionDetail(BaseModel):
    """Full view of a practice session."""
    id: int = Field(..., description="Unique session ID")
    mode: Mode
    branch_id: int
    subject_id: Optional[int] = None
    topic_id: Optional[int] = None
    level_number: int = Field(..., description="Student level when the session was created")
    target_difficulty: float = Field(..., description="Difficulty the selection aimed for")
    question_count: int
    question_items: List[QuestionItem]
    responses: List[GradedResponse] = Field(default_factory=list)
    score: Optional[float] = Field(None, description="Fraction of session questions answered correctly")
    completed: bool
    started_at: datetime
    completed_at: Optional[datetime] = None


class SessionResult(BaseModel):
    """Outcome of a submitted session."""
    session_id: int
    score: float
    correct_count: int
    total_questions: int
    completed_at: datetime


class SessionListItem(BaseModel):
    """Session item in history response."""
    id: int
    mode: Mode
    branch_id: int
    subject_id: Optional[int] = None
    topic_id: Optional[int] = None
    level_number: int
    question_count: int
    score: Optional[float] = None
    completed: bool
    started_at: datetime
    completed_at: Optional[datetime] = None


class ProgressItem(BaseModel):
    """Skill state of one scope."""
    scope_type: str
    scope_id: Optional[int] = None
    current_level: int
    skill: float
    total_answered: int
    total_correct: int
    streak: int
    last_session_at: Optional[datetime] = None


class BranchItem(BaseModel):
    id: int
    key: str = Field(..., description="Stable branch key, e.g. JEE")
    name: str
    order: int


class TopicItem(BaseModel):
    id: int
    key: str
    name: str
    syllabus_path: List[str] = Field(default_factory=list, description="Syllabus headings down to this topic")
    order: int


class SubjectItem(BaseModel):
    id: int
    key: str
    name: str
    order: int
    topic_count: int


class SubjectTree(SubjectItem):
    topics: List[TopicItem]


class BranchList(BaseModel):
    branches: List[BranchItem]


class BranchTaxonomy(BaseModel):
    """Whole tree of one branch."""
    branch: BranchItem
    subjects: List[SubjectTree]


class BranchSubjects(BaseModel):
    branch: BranchItem
    subjects: List[SubjectItem]


class SubjectTopics(BaseModel):
    branch: BranchItem
    subject: SubjectItem
    topics: List[TopicItem]


class HealthStatus(BaseModel):
    status: str
    database: str


def sign_token(user_ref: str, timestamp: Optional[int] = None) -> str:
    """Build a token in the `{user}:{timestamp}:{signature}` format."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    data = f"{user_ref}:{timestamp}"
    signature = hmac.new(settings.AUTH_SECRET.encode(), data.encode(), hashlib.sha256).hexdigest()
    return f"{data}:{signature}"


def verify_token(token: str) -> Optional[str]:
    """
    Verify a signed token and return the external user reference.
    Format: {user}:{timestamp}:{signature}
    """
    if not token:
        return None

    parts = token.split(':')
    if len(parts) != 3:
        return None

    user_ref, timestamp_str, signature = parts
    try:
        timestamp = int(timestamp_str)
    except ValueError:
        return None

    # Check expiration
    if int(time.time()) - timestamp > settings.TOKEN_TTL_SECONDS:
        logger.warning("Token expired", user=user_ref)
        return None

    expected = sign_token(user_ref, timestamp).rsplit(':', 1)[1]
    if hmac.compare_digest(expected, signature):
        return user_ref

    logger.warning("Token signature mismatch", user=user_ref)
    return None


def get_current_user(x_auth_token: str = Header(None)) -> str:
    user_ref = verify_token(x_auth_token)
    if user_ref:
        return user_ref
    logger.warning("Auth failed: Missing or invalid credentials")
    raise HTTPException(status_code=401, detail="Unauthorized")


async def get_student_id(user_ref: str, db: AsyncSession) -> Optional[int]:
    user = await UserService(db).get_user(user_ref)
    return user.id if user else None


@app.post(
    "/api/sessions",
    response_model=SessionDetail,
    status_code=201,
    tags=["sessions"],
    summary="Start a practice session",
    description="Selects questions around the student's skill for the requested scope.",
    responses={
        201: {"description": "Session created, answers withheld"},
        400: {"description": "Scope ids do not match the mode"},
        401: {"description": "Authentication required"},
        404: {"description": "No questions available"},
    },
)
async def create_session(
    body: SessionCreate,
    user_ref: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    service = SessionService(db, redis=redis)
    session = await service.create_session(
        user_ref, body.mode, body.branch_id, subject_id=body.subject_id, topic_id=body.topic_id
    )
    return session_view(session)


@app.post(
    "/api/sessions/{session_id}/submit",
    response_model=SessionResult,
    tags=["sessions"],
    summary="Submit answers",
    description="Grades the responses, completes the session and updates progress.",
    responses={
        200: {"description": "Session graded"},
        400: {"description": "Empty responses or question outside the session"},
        401: {"description": "Authentication required"},
        404: {"description": "Session not found"},
        409: {"description": "Session already completed"},
    },
)
async def submit_session(
    session_id: int,
    body: SessionSubmit,
    user_ref: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    student_id = await get_student_id(user_ref, db)
    if student_id is None:
        raise SessionNotFound(session_id=session_id)

    service = SessionService(db, redis=redis)
    session = await service.submit_session(
        session_id, [r.model_dump() for r in body.responses], user_id=student_id
    )
    return {
        "session_id": session.id,
        "score": session.score,
        "correct_count": sum(1 for r in session.responses if r["correct"]),
        "total_questions": len(session.question_items),
        "completed_at": session.completed_at,
    }


@app.get(
    "/api/sessions/{session_id}",
    response_model=SessionDetail,
    tags=["sessions"],
    summary="Get session details",
    description="Correct answers are included only for completed sessions when `answers=true`.",
    responses={
        200: {"description": "Session details"},
        401: {"description": "Authentication required"},
        404: {"description": "Session not found"},
    },
)
async def get_session(
    session_id: int,
    answers: bool = Query(False, description="Reveal correct answers of a completed session"),
    user_ref: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    student_id = await get_student_id(user_ref, db)
    if student_id is None:
        raise SessionNotFound(session_id=session_id)
    return await SessionService(db).get_session(session_id, include_answers=answers, user_id=student_id)


@app.get(
    "/api/sessions",
    response_model=List[SessionListItem],
    tags=["sessions"],
    summary="Session history",
    description="Sessions of the authenticated student, newest first.",
)
async def list_sessions(
    branch_id: Optional[int] = Query(None),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_ref: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    student_id = await get_student_id(user_ref, db)
    if student_id is None:
        return []
    sessions = await SessionService(db).list_sessions(student_id, branch_id=branch_id, limit=limit, offset=offset)
    return [{
        "id": s.id,
        "mode": s.mode,
        "branch_id": s.branch_id,
        "subject_id": s.subject_id,
        "topic_id": s.topic_id,
        "level_number": s.level_number,
        "question_count": len(s.question_items),
        "score": s.score,
        "completed": s.completed,
        "started_at": s.started_at,
        "completed_at": s.completed_at,
    } for s in sessions]


@app.get(
    "/api/progress",
    response_model=List[ProgressItem],
    tags=["progress"],
    summary="Student progress",
    description="Every scope record of the student in a branch: branch first, then subjects, then topics.",
)
async def get_progress(
    branch_id: int = Query(...),
    user_ref: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    student_id = await get_student_id(user_ref, db)
    if student_id is None:
        return []
    records = await ProgressService(db).list_progress(student_id, branch_id)
    return [{
        "scope_type": p.scope_type,
        "scope_id": p.scope_id,
        "current_level": p.current_level,
        "skill": p.skill,
        "total_answered": p.total_answered,
        "total_correct": p.total_correct,
        "streak": p.streak,
        "last_session_at": p.last_session_at,
    } for p in records]


def branch_view(branch) -> dict:
    return {"id": branch.id, "key": branch.key, "name": branch.name, "order": branch.order}


def subject_view(subject, with_topics: bool = False) -> dict:
    view = {
        "id": subject.id,
        "key": subject.key,
        "name": subject.name,
        "order": subject.order,
        "topic_count": subject.topic_count,
    }
    if with_topics:
        view["topics"] = [topic_view(t) for t in subject.topics]
    return view


def topic_view(topic) -> dict:
    return {
        "id": topic.id,
        "key": topic.key,
        "name": topic.name,
        "syllabus_path": topic.syllabus_path or [],
        "order": topic.order,
    }


@app.get(
    "/api/taxonomy",
    response_model=BranchTaxonomy,
    tags=["taxonomy"],
    summary="Branch taxonomy",
    description="Subjects of a branch with their topics, both in syllabus order.",
    responses={404: {"description": "Branch not found"}},
)
async def get_taxonomy(
    branch: str = Query(..., description="Branch key, e.g. JEE"),
    db: AsyncSession = Depends(get_db),
):
    branch_row, subjects = await TaxonomyService(db).list_subjects(branch)
    return {"branch": branch_view(branch_row), "subjects": [subject_view(s, with_topics=True) for s in subjects]}


@app.get("/api/taxonomy/branches", response_model=BranchList, tags=["taxonomy"], summary="List branches")
async def list_branches(db: AsyncSession = Depends(get_db)):
    return {"branches": [branch_view(b) for b in await TaxonomyService(db).list_branches()]}


@app.get(
    "/api/taxonomy/branches/{branch_key}/subjects",
    response_model=BranchSubjects,
    tags=["taxonomy"],
    summary="Subjects of a branch",
    responses={404: {"description": "Branch not found"}},
)
async def list_subjects(branch_key: str, db: AsyncSession = Depends(get_db)):
    branch, subjects = await TaxonomyService(db).list_subjects(branch_key)
    return {"branch": branch_view(branch), "subjects": [subject_view(s) for s in subjects]}


@app.get(
    "/api/taxonomy/branches/{branch_key}/subjects/{subject_key}/topics",
    response_model=SubjectTopics,
    tags=["taxonomy"],
    summary="Topics of a subject",
    responses={404: {"description": "Branch or subject not found"}},
)
async def list_topics(branch_key: str, subject_key: str, db: AsyncSession = Depends(get_db)):
    branch, subject, topics = await TaxonomyService(db).list_topics(branch_key, subject_key)
    return {
        "branch": branch_view(branch),
        "subject": subject_view(subject),
        "topics": [topic_view(t) for t in topics],
    }


@app.get("/health", response_model=HealthStatus, tags=["info"], summary="Health check")
async def health(db: AsyncSession = Depends(get_db)):
    try:
        await db.execute(text("SELECT 1"))
        database = "ok"
    except Exception as e:
        logger.error("Health check database failure", error=str(e))
        database = "unavailable"
    return {"status": "ok" if database == "ok" else "degraded", "database": database}

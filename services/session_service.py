from typing import Iterable, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from redis.asyncio import Redis

from core.config import PracticeConfig, DEFAULT_PRACTICE_CONFIG
from core.exceptions import (
    EmptyResponseSet,
    InvalidScopeForMode,
    NoQuestionsAvailable,
    SessionAlreadyCompleted,
    SessionNotFound,
    UnknownQuestionInSession,
)
from core.logger import logger
from models.base import utcnow
from models.enums import Mode
from models.progress import make_scope_key
from models.session import PracticeSession
from services.difficulty import get_difficulty_range
from services.progress_service import ProgressService
from services.question_repository import QuestionRepository
from services.selection_service import QuestionSelectionService
from services.stats_service import StatsService
from services.user_service import UserService


def normalize_scope(mode, subject_id: Optional[int], topic_id: Optional[int]) -> tuple[Mode, Optional[int], Optional[int]]:
    """Check the ids a mode needs and drop the ones it does not use."""
    try:
        mode = Mode(mode)
    except ValueError:
        raise InvalidScopeForMode(f"Invalid mode {mode!r}. Must be one of: all, subject, topic")

    if mode == Mode.SUBJECT:
        if subject_id is None:
            raise InvalidScopeForMode('subject_id required when mode is "subject"')
        return mode, subject_id, None
    if mode == Mode.TOPIC:
        if subject_id is None or topic_id is None:
            raise InvalidScopeForMode('Both subject_id and topic_id required when mode is "topic"')
        return mode, subject_id, topic_id
    return mode, None, None


def session_view(session: PracticeSession, include_answers: bool = False) -> dict:
    """
    Read model of a session. Correct indices are only revealed when the
    session is completed and the caller asked for them.
    """
    reveal = bool(session.completed and include_answers)
    items = []
    for item in session.question_items:
        view = {
            "question_id": item["question_id"],
            "stem": item["stem"],
            "options": item["options"],
            "difficulty": item["difficulty"],
        }
        if reveal:
            view["correct_index"] = item["correct_index"]
        items.append(view)

    return {
        "id": session.id,
        "mode": session.mode,
        "branch_id": session.branch_id,
        "subject_id": session.subject_id,
        "topic_id": session.topic_id,
        "level_number": session.level_number,
        "target_difficulty": session.target_difficulty,
        "question_count": len(session.question_items),
        "question_items": items,
        "responses": session.responses or [],
        "score": session.score,
        "completed": session.completed,
        "started_at": session.started_at,
        "completed_at": session.completed_at,
    }


class SessionService:
    def __init__(self, db: AsyncSession, redis: Redis = None, config: PracticeConfig = DEFAULT_PRACTICE_CONFIG):
        self.db = db
        self.redis = redis
        self.config = config
        self.users = UserService(db)
        self.progress = ProgressService(db, redis=redis, config=config)
        self.selection = QuestionSelectionService(QuestionRepository(db), config=config)
        self.stats = StatsService(db)

    async def create_session(
        self,
        external_user_id: str,
        mode,
        branch_id: int,
        subject_id: Optional[int] = None,
        topic_id: Optional[int] = None,
    ) -> PracticeSession:
        mode, subject_id, topic_id = normalize_scope(mode, subject_id, topic_id)

        user, _ = await self.users.get_or_create_user(external_user_id)
        progress = await self.progress.get_or_create_progress(user.id, mode, branch_id, subject_id, topic_id)

        difficulty = get_difficulty_range(progress.skill, self.config)
        questions = await self.selection.select_questions(
            branch_id,
            difficulty.target,
            count=self.config.questions_per_level,
            exclude_ids=progress.recent_question_ids or [],
            subject_id=subject_id,
            topic_id=topic_id,
        )
        if not questions:
            raise NoQuestionsAvailable(branch_id=branch_id, subject_id=subject_id, topic_id=topic_id)

        session = PracticeSession(
            user_id=user.id,
            mode=mode.value,
            branch_id=branch_id,
            subject_id=subject_id,
            topic_id=topic_id,
            level_number=progress.current_level,
            target_difficulty=difficulty.target,
            question_items=[
                {
                    "question_id": q.id,
                    "stem": q.stem,
                    "options": list(q.options),
                    "difficulty": q.difficulty,
                    "correct_index": q.correct_index,
                }
                for q in questions
            ],
            responses=[],
            completed=False,
            started_at=utcnow(),
        )
        self.db.add(session)
        await self.db.commit()
        await self.db.refresh(session)

        await self.progress.touch_last_session(progress.id)

        logger.info(
            "Practice session created",
            user_id=user.id, session_id=session.id, mode=mode.value,
            questions=len(questions), target_difficulty=difficulty.target,
        )
        return session

    async def get_session_record(self, session_id: int, user_id: Optional[int] = None) -> PracticeSession:
        query = select(PracticeSession).filter(PracticeSession.id == session_id)
        if user_id is not None:
            query = query.filter(PracticeSession.user_id == user_id)
        result = await self.db.execute(query)
        session = result.scalar_one_or_none()
        if not session:
            raise SessionNotFound(session_id=session_id)
        return session

    async def get_session(self, session_id: int, include_answers: bool = False, user_id: Optional[int] = None) -> dict:
        session = await self.get_session_record(session_id, user_id=user_id)
        return session_view(session, include_answers=include_answers)

    def grade(self, session: PracticeSession, responses: Iterable[dict]) -> List[dict]:
        """
        Grade against the snapshot taken at creation, never a fresh question
        lookup. A repeated question id keeps the last answer given.
        """
        items = {item["question_id"]: item for item in session.question_items}
        graded = {}
        for r in responses:
            item = items.get(r["question_id"])
            if item is None:
                raise UnknownQuestionInSession(
                    f"Question {r['question_id']} not found in session",
                    session_id=session.id, question_id=r["question_id"],
                )
            graded[r["question_id"]] = {
                "question_id": r["question_id"],
                "selected_index": r["selected_index"],
                "correct": r["selected_index"] == item["correct_index"],
                "time_sec": r["time_sec"],
            }
        return list(graded.values())

    async def submit_session(self, session_id: int, responses: List[dict], user_id: Optional[int] = None) -> PracticeSession:
        if not responses:
            raise EmptyResponseSet(session_id=session_id)

        session = await self.get_session_record(session_id, user_id=user_id)
        if session.completed:
            raise SessionAlreadyCompleted(session_id=session_id)

        graded = self.grade(session, responses)
        correct_count = sum(1 for r in graded if r["correct"])
        total = len(session.question_items)
        score = correct_count / total if total else 0.0

        user_id = session.user_id
        branch_id, scope_type, scope_id = session.branch_id, session.scope_type, session.scope_id
        question_ids = session.question_ids

        # Completion and the progress fold commit together or not at all
        async with self.progress.scope_lock(user_id, make_scope_key(scope_type, branch_id, scope_id)):
            try:
                # Conditional update: only one concurrent submit can flip completed
                result = await self.db.execute(
                    update(PracticeSession)
                    .filter(PracticeSession.id == session_id, PracticeSession.completed == False)  # noqa: E712
                    .values(responses=graded, score=score, completed=True, completed_at=utcnow())
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise SessionAlreadyCompleted(session_id=session_id)

                await self.progress.fold_session(
                    user_id=user_id,
                    branch_id=branch_id,
                    scope_type=scope_type,
                    scope_id=scope_id,
                    correct_count=correct_count,
                    answered=total,
                    question_ids=question_ids,
                )
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        logger.info(
            "Practice session submitted",
            session_id=session_id, user_id=user_id,
            correct=correct_count, total=total, score=round(score, 4),
        )

        # Statistic failures roll back on their own and never undo the submission
        await self.stats.record_session(graded)
        await self.db.refresh(session)
        return session

    async def list_sessions(self, user_id: int, branch_id: Optional[int] = None, limit: int = 10, offset: int = 0) -> List[PracticeSession]:
        query = select(PracticeSession).filter(PracticeSession.user_id == user_id)
        if branch_id is not None:
            query = query.filter(PracticeSession.branch_id == branch_id)
        result = await self.db.execute(
            query.order_by(PracticeSession.created_at.desc(), PracticeSession.id.desc()).offset(offset).limit(limit)
        )
        return list(result.scalars().all())

from contextlib import asynccontextmanager
from typing import List, NamedTuple, Optional, Sequence

from sqlalchemy import select, update, case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from redis.asyncio import Redis

from core.config import PracticeConfig, DEFAULT_PRACTICE_CONFIG, settings
from core.exceptions import ProgressRecordMissing
from core.logger import logger
from models.base import utcnow
from models.enums import Mode, ScopeType
from models.progress import StudentProgress, make_scope_key
from services.difficulty import clamp


class ProgressState(NamedTuple):
    current_level: int
    skill: float
    total_answered: int
    total_correct: int
    streak: int
    recent_question_ids: List[int]


def scope_for(mode: Mode, subject_id: Optional[int], topic_id: Optional[int]) -> tuple[ScopeType, Optional[int]]:
    mode = Mode(mode)
    if mode == Mode.TOPIC and topic_id is not None:
        return ScopeType.TOPIC, topic_id
    if mode == Mode.SUBJECT and subject_id is not None:
        return ScopeType.SUBJECT, subject_id
    return ScopeType.BRANCH, None


def compute_progress_update(
    state: ProgressState,
    correct_count: int,
    answered: int,
    question_ids: Sequence[int],
    config: PracticeConfig = DEFAULT_PRACTICE_CONFIG,
) -> ProgressState:
    """
    Fold one completed session into a scope's progress.

    accuracy = correct_count / answered. Skill moves by
    learning_rate * (accuracy - threshold); passing sessions (accuracy at or
    above the threshold) extend the streak and add a level, failing ones
    reset the streak. Levels never go down. The session's question ids are
    prepended to the recent window, which is then capped.
    """
    accuracy = correct_count / answered if answered else 0.0
    passed = accuracy >= config.level_up_threshold

    skill = clamp(state.skill + config.skill_learning_rate * (accuracy - config.level_up_threshold), 0.0, 1.0)
    recent = (list(question_ids) + list(state.recent_question_ids or []))[:config.recent_questions_cap]

    return ProgressState(
        current_level=state.current_level + 1 if passed else state.current_level,
        skill=skill,
        total_answered=state.total_answered + answered,
        total_correct=state.total_correct + correct_count,
        streak=state.streak + 1 if passed else 0,
        recent_question_ids=recent,
    )


class ProgressService:
    def __init__(self, db: AsyncSession, redis: Redis = None, config: PracticeConfig = DEFAULT_PRACTICE_CONFIG):
        self.db = db
        self.redis = redis
        self.config = config

    async def find_progress(
        self, user_id: int, branch_id: int, scope_type: ScopeType, scope_id: Optional[int], for_update: bool = False
    ) -> Optional[StudentProgress]:
        query = select(StudentProgress).filter(
            StudentProgress.user_id == user_id,
            StudentProgress.branch_id == branch_id,
            StudentProgress.scope_key == make_scope_key(scope_type, branch_id, scope_id),
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_or_create_progress(
        self, user_id: int, mode: Mode, branch_id: int, subject_id: Optional[int] = None, topic_id: Optional[int] = None
    ) -> StudentProgress:
        scope_type, scope_id = scope_for(mode, subject_id, topic_id)
        progress = await self.find_progress(user_id, branch_id, scope_type, scope_id)
        if progress:
            return progress

        progress = StudentProgress(
            user_id=user_id,
            branch_id=branch_id,
            scope_type=scope_type.value,
            scope_id=scope_id,
            scope_key=make_scope_key(scope_type, branch_id, scope_id),
            current_level=self.config.initial_level,
            skill=self.config.initial_skill,
            total_answered=0,
            total_correct=0,
            streak=0,
            recent_question_ids=[],
        )
        self.db.add(progress)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a creation race; the unique scope constraint kept one row
            await self.db.rollback()
            return await self.find_progress(user_id, branch_id, scope_type, scope_id)

        await self.db.refresh(progress)
        logger.info("Progress record created", user_id=user_id, scope=progress.scope_key)
        return progress

    async def touch_last_session(self, progress_id: int):
        await self.db.execute(
            update(StudentProgress)
            .filter(StudentProgress.id == progress_id)
            .values(last_session_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

    @asynccontextmanager
    async def scope_lock(self, user_id: int, scope_key: str):
        """Serialize read-modify-write of one (user, scope) progress record."""
        if not self.redis:
            yield
            return
        lock = self.redis.lock(
            f"practice:progress:{user_id}:{scope_key}",
            timeout=settings.PROGRESS_LOCK_TIMEOUT_SECONDS,
            blocking_timeout=settings.PROGRESS_LOCK_TIMEOUT_SECONDS,
        )
        async with lock:
            yield

    async def fold_session(
        self,
        user_id: int,
        branch_id: int,
        scope_type: ScopeType,
        scope_id: Optional[int],
        correct_count: int,
        answered: int,
        question_ids: Sequence[int],
    ) -> StudentProgress:
        """
        Row-locked read-modify-write of the scope's progress, flushed but not
        committed. Callers hold `scope_lock` and own the transaction.
        """
        progress = await self.find_progress(user_id, branch_id, scope_type, scope_id, for_update=True)
        if not progress:
            scope_key = make_scope_key(scope_type, branch_id, scope_id)
            logger.error("Progress record missing at update time", user_id=user_id, scope=scope_key)
            raise ProgressRecordMissing(user_id=user_id, scope=scope_key)

        new_state = compute_progress_update(
            ProgressState(
                current_level=progress.current_level,
                skill=progress.skill,
                total_answered=progress.total_answered,
                total_correct=progress.total_correct,
                streak=progress.streak,
                recent_question_ids=progress.recent_question_ids,
            ),
            correct_count=correct_count,
            answered=answered,
            question_ids=question_ids,
            config=self.config,
        )

        for field, value in new_state._asdict().items():
            setattr(progress, field, value)
        progress.last_session_at = utcnow()
        await self.db.flush()

        logger.info(
            "Progress updated",
            user_id=user_id, scope=progress.scope_key,
            skill=round(progress.skill, 4), level=progress.current_level, streak=progress.streak,
        )
        return progress

    async def list_progress(self, user_id: int, branch_id: int) -> List[StudentProgress]:
        """Every scope record of the student in a branch: branch, then subjects, then topics."""
        scope_rank = case(
            (StudentProgress.scope_type == ScopeType.BRANCH.value, 0),
            (StudentProgress.scope_type == ScopeType.SUBJECT.value, 1),
            else_=2,
        )
        result = await self.db.execute(
            select(StudentProgress)
            .filter(StudentProgress.user_id == user_id, StudentProgress.branch_id == branch_id)
            .order_by(scope_rank, StudentProgress.created_at.asc(), StudentProgress.id.asc())
        )
        return list(result.scalars().all())

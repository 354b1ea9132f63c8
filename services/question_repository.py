from datetime import datetime
from enum import Enum
from typing import FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from models.enums import QuestionStatus
from models.question import Question, QuestionTopic


class QuestionOrder(str, Enum):
    """Orderings the selection engine can ask for."""
    # |difficulty - target| asc, attempt_count asc, created_at desc
    CLOSEST_TO_TARGET = "closest_to_target"
    # attempt_count asc, created_at desc
    LEAST_ATTEMPTED = "least_attempted"
    # created_at desc
    NEWEST = "newest"


class QuestionQuery(BaseModel):
    """Filter + ordering + limit for a candidate lookup."""
    model_config = ConfigDict(frozen=True)

    branch_id: int
    subject_id: Optional[int] = None
    topic_id: Optional[int] = None
    status: QuestionStatus = QuestionStatus.APPROVED

    min_difficulty: Optional[float] = None
    max_difficulty: Optional[float] = None
    min_inclusive: bool = True
    max_inclusive: bool = True

    exclude_ids: FrozenSet[int] = Field(default_factory=frozenset)
    created_before: Optional[datetime] = None

    order: QuestionOrder = QuestionOrder.CLOSEST_TO_TARGET
    target: Optional[float] = None
    limit: int = 200


class QuestionRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    def _build(self, query: QuestionQuery):
        stmt = select(Question).filter(
            Question.status == query.status.value,
            Question.branch_id == query.branch_id,
        )
        if query.subject_id is not None:
            stmt = stmt.filter(Question.subject_id == query.subject_id)
        if query.topic_id is not None:
            stmt = stmt.filter(
                Question.id.in_(select(QuestionTopic.question_id).filter(QuestionTopic.topic_id == query.topic_id))
            )
        if query.exclude_ids:
            stmt = stmt.filter(Question.id.not_in(list(query.exclude_ids)))

        if query.min_difficulty is not None:
            stmt = stmt.filter(
                Question.difficulty >= query.min_difficulty
                if query.min_inclusive
                else Question.difficulty > query.min_difficulty
            )
        if query.max_difficulty is not None:
            stmt = stmt.filter(
                Question.difficulty <= query.max_difficulty
                if query.max_inclusive
                else Question.difficulty < query.max_difficulty
            )
        if query.created_before is not None:
            stmt = stmt.filter(Question.created_at < query.created_before)

        if query.order == QuestionOrder.CLOSEST_TO_TARGET:
            target = query.target if query.target is not None else 0.5
            stmt = stmt.order_by(
                func.abs(Question.difficulty - target).asc(),
                Question.attempt_count.asc(),
                Question.created_at.desc(),
                Question.id.desc(),
            )
        elif query.order == QuestionOrder.LEAST_ATTEMPTED:
            stmt = stmt.order_by(Question.attempt_count.asc(), Question.created_at.desc(), Question.id.desc())
        else:
            stmt = stmt.order_by(Question.created_at.desc(), Question.id.desc())

        return stmt.limit(query.limit)

    async def find(self, query: QuestionQuery) -> List[Question]:
        if query.limit <= 0:
            return []
        result = await self.db.execute(self._build(query))
        return list(result.scalars().all())

    async def get(self, question_id: int) -> Optional[Question]:
        result = await self.db.execute(select(Question).filter(Question.id == question_id))
        return result.scalar_one_or_none()

    async def record_attempt(self, question_id: int, correct: bool, time_sec: float) -> bool:
        """
        Fold one answer into the question's usage statistics.
        Single UPDATE with column arithmetic, so concurrent sessions never
        lose an increment.
        """
        result = await self.db.execute(
            update(Question)
            .filter(Question.id == question_id)
            .values(
                avg_time_sec=(Question.avg_time_sec * Question.attempt_count + time_sec)
                / (Question.attempt_count + 1),
                attempt_count=Question.attempt_count + 1,
                correct_count=Question.correct_count + (1 if correct else 0),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

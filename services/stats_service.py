from typing import Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from services.question_repository import QuestionRepository
from core.logger import logger

class StatsService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.questions = QuestionRepository(db)

    async def record_attempt(self, question_id: int, correct: bool, time_sec: float) -> bool:
        """Atomic increment of attempt/correct counters and the rolling average time."""
        return await self.questions.record_attempt(question_id, correct, max(0.0, float(time_sec)))

    async def record_session(self, responses: Iterable[dict]) -> int:
        """
        Apply one statistic update per graded response, each committed on its
        own. A failing update is rolled back, logged and skipped; it never
        touches the others or the already committed session completion.
        Returns the number of updates applied.
        """
        applied = 0
        for r in responses:
            try:
                if await self.record_attempt(r["question_id"], r["correct"], r["time_sec"]):
                    applied += 1
                else:
                    logger.warning("Question missing for stats update", question_id=r["question_id"])
                await self.db.commit()
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.warning("Question stats update failed", question_id=r["question_id"], error=str(e))
        return applied

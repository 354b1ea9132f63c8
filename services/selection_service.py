from datetime import timedelta
from typing import Iterable, List, Optional

from core.config import PracticeConfig, DEFAULT_PRACTICE_CONFIG
from core.exceptions import NoQuestionsAvailable
from core.logger import logger
from models.base import utcnow
from models.enums import Mode
from models.question import Question
from services.coverage import balance_coverage
from services.difficulty import query_window
from services.question_repository import QuestionRepository, QuestionQuery, QuestionOrder


def mode_for_scope(subject_id: Optional[int], topic_id: Optional[int]) -> Mode:
    if topic_id is not None:
        return Mode.TOPIC
    if subject_id is not None:
        return Mode.SUBJECT
    return Mode.ALL


class QuestionSelectionService:
    def __init__(self, repository: QuestionRepository, config: PracticeConfig = DEFAULT_PRACTICE_CONFIG):
        self.repository = repository
        self.config = config

    async def fetch_candidates(
        self,
        branch_id: int,
        target: float,
        radius: float,
        exclude_ids: Iterable[int] = (),
        subject_id: Optional[int] = None,
        topic_id: Optional[int] = None,
    ) -> List[Question]:
        """Approved, not-recently-seen questions inside the difficulty window."""
        low, high = query_window(target, radius)
        pool = await self.repository.find(QuestionQuery(
            branch_id=branch_id,
            subject_id=subject_id,
            topic_id=topic_id,
            min_difficulty=low,
            max_difficulty=high,
            exclude_ids=frozenset(exclude_ids),
            order=QuestionOrder.CLOSEST_TO_TARGET,
            target=target,
            limit=self.config.candidate_pool_limit,
        ))
        if not pool:
            raise NoQuestionsAvailable(
                branch_id=branch_id, subject_id=subject_id, topic_id=topic_id, target=target
            )
        return pool

    async def select_questions(
        self,
        branch_id: int,
        target: float,
        count: int,
        exclude_ids: Iterable[int] = (),
        subject_id: Optional[int] = None,
        topic_id: Optional[int] = None,
        radius: Optional[float] = None,
    ) -> List[Question]:
        radius = self.config.difficulty_range if radius is None else radius
        exclude_ids = list(exclude_ids)

        pool = await self.fetch_candidates(
            branch_id, target, radius, exclude_ids, subject_id=subject_id, topic_id=topic_id
        )
        selected = balance_coverage(mode_for_scope(subject_id, topic_id), pool, count)

        if len(selected) < count:
            backfill = await self.backfill(
                branch_id,
                target,
                radius,
                shortfall=count - len(selected),
                exclude_ids=set(exclude_ids) | {q.id for q in selected},
                subject_id=subject_id,
                topic_id=topic_id,
            )
            selected.extend(backfill)

        if len(selected) < count:
            logger.warning(
                "Short practice selection",
                branch_id=branch_id, subject_id=subject_id, topic_id=topic_id,
                requested=count, selected=len(selected),
            )
        return selected[:count]

    async def backfill(
        self,
        branch_id: int,
        target: float,
        radius: float,
        shortfall: int,
        exclude_ids: set,
        subject_id: Optional[int] = None,
        topic_id: Optional[int] = None,
    ) -> List[Question]:
        """
        Widen the search when the primary pool ran dry:
        easier questions, then harder ones, then anything older than the
        staleness threshold. Best effort, may return fewer than `shortfall`.
        """
        low, high = query_window(target, radius)
        wide_low, wide_high = query_window(target, radius * 2)
        excluded = set(exclude_ids)
        found: List[Question] = []

        tiers = [
            # easier: [wide_low, low)
            dict(min_difficulty=wide_low, max_difficulty=low, max_inclusive=False,
                 order=QuestionOrder.LEAST_ATTEMPTED),
            # harder: (high, wide_high]
            dict(min_difficulty=high, min_inclusive=False, max_difficulty=wide_high,
                 order=QuestionOrder.LEAST_ATTEMPTED),
            # stale: any difficulty, older than the threshold
            dict(created_before=utcnow() - timedelta(days=self.config.stale_after_days),
                 order=QuestionOrder.NEWEST),
        ]

        for tier, params in enumerate(tiers, start=1):
            missing = shortfall - len(found)
            if missing <= 0:
                break
            batch = await self.repository.find(QuestionQuery(
                branch_id=branch_id,
                subject_id=subject_id,
                topic_id=topic_id,
                exclude_ids=frozenset(excluded),
                limit=missing,
                **params,
            ))
            found.extend(batch)
            excluded.update(q.id for q in batch)
            logger.debug("Backfill tier applied", tier=tier, found=len(batch), missing=missing)

        return found

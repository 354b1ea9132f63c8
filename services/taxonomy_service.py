from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from core.exceptions import BranchNotFound, SubjectNotFound
from models.taxonomy import Branch, Subject, Topic


class TaxonomyService:
    """Read access to the branch > subject > topic tree, addressed by keys."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_branches(self) -> List[Branch]:
        result = await self.db.execute(select(Branch).order_by(Branch.order, Branch.id))
        return list(result.scalars().all())

    async def get_branch(self, branch_key: str) -> Branch:
        result = await self.db.execute(select(Branch).filter(Branch.key == branch_key))
        branch = result.scalar_one_or_none()
        if not branch:
            raise BranchNotFound(branch=branch_key)
        return branch

    async def list_subjects(self, branch_key: str) -> tuple[Branch, List[Subject]]:
        branch = await self.get_branch(branch_key)
        result = await self.db.execute(
            select(Subject).filter(Subject.branch_id == branch.id).order_by(Subject.order, Subject.id)
        )
        return branch, list(result.scalars().all())

    async def get_subject(self, branch_key: str, subject_key: str) -> tuple[Branch, Subject]:
        branch = await self.get_branch(branch_key)
        result = await self.db.execute(
            select(Subject).filter(Subject.branch_id == branch.id, Subject.key == subject_key)
        )
        subject = result.scalar_one_or_none()
        if not subject:
            raise SubjectNotFound(branch=branch_key, subject=subject_key)
        return branch, subject

    async def list_topics(self, branch_key: str, subject_key: str) -> tuple[Branch, Subject, List[Topic]]:
        branch, subject = await self.get_subject(branch_key, subject_key)
        result = await self.db.execute(
            select(Topic)
            .filter(Topic.branch_id == branch.id, Topic.subject_id == subject.id)
            .order_by(Topic.order, Topic.id)
        )
        return branch, subject, list(result.scalars().all())

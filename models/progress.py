from typing import Optional
from sqlalchemy import Column, Integer, String, Float, DateTime, JSON, ForeignKey, UniqueConstraint
from models.base import Base, TimestampMixin
from models.enums import ScopeType


def make_scope_key(scope_type: ScopeType, branch_id: int, scope_id: Optional[int]) -> str:
    """Non-null identity of a scope; branch scopes have no scope_id."""
    scope_type = ScopeType(scope_type)
    if scope_type == ScopeType.BRANCH:
        return f"branch:{branch_id}"
    return f"{scope_type.value}:{scope_id}"


class StudentProgress(Base, TimestampMixin):
    __tablename__ = "student_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "branch_id", "scope_key", name="uq_progress_user_scope"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    branch_id = Column(Integer, index=True, nullable=False)
    scope_type = Column(String(10), index=True, nullable=False)
    scope_id = Column(Integer, index=True, nullable=True)
    scope_key = Column(String(64), nullable=False)

    current_level = Column(Integer, default=1, nullable=False)
    skill = Column(Float, default=0.5, nullable=False)
    total_answered = Column(Integer, default=0, nullable=False)
    total_correct = Column(Integer, default=0, nullable=False)
    streak = Column(Integer, default=0, nullable=False)
    last_session_at = Column(DateTime, nullable=True)

    # Most recent first, capped by PracticeConfig.recent_questions_cap
    recent_question_ids = Column(JSON, default=list, nullable=False)


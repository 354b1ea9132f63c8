from sqlalchemy import Column, Integer, String, ForeignKey, Float, Boolean, DateTime, JSON, Index
from models.base import Base, TimestampMixin, utcnow
from models.enums import Mode, ScopeType

class PracticeSession(Base, TimestampMixin):
    __tablename__ = "practice_sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    mode = Column(String(10), index=True, nullable=False)

    branch_id = Column(Integer, index=True, nullable=False)
    subject_id = Column(Integer, nullable=True)
    topic_id = Column(Integer, nullable=True)

    # Captured at creation, never changed afterwards
    level_number = Column(Integer, index=True, nullable=False)
    target_difficulty = Column(Float, nullable=False)

    # [{question_id, stem, options, difficulty, correct_index}]
    # correct_index stays server side until the session is completed
    question_items = Column(JSON, nullable=False)
    # [{question_id, selected_index, correct, time_sec}]
    responses = Column(JSON, default=list, nullable=False)

    score = Column(Float, nullable=True)
    completed = Column(Boolean, default=False, nullable=False, index=True)
    started_at = Column(DateTime, default=utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    @property
    def question_ids(self) -> list[int]:
        return [item["question_id"] for item in self.question_items]

    @property
    def scope_type(self) -> ScopeType:
        if self.mode == Mode.TOPIC.value:
            return ScopeType.TOPIC
        if self.mode == Mode.SUBJECT.value:
            return ScopeType.SUBJECT
        return ScopeType.BRANCH

    @property
    def scope_id(self):
        if self.mode == Mode.TOPIC.value:
            return self.topic_id
        if self.mode == Mode.SUBJECT.value:
            return self.subject_id
        return None


Index("idx_sessions_user_completed", PracticeSession.user_id, PracticeSession.completed, PracticeSession.created_at)
Index("idx_sessions_scope_level", PracticeSession.branch_id, PracticeSession.subject_id, PracticeSession.level_number)

from sqlalchemy import Column, Integer, String, Text, Float, JSON, ForeignKey, Index
from sqlalchemy.orm import relationship
from models.base import Base, TimestampMixin
from models.enums import QuestionStatus, QuestionSource
# Foreign key targets must be in the metadata before questions are mapped
from models.taxonomy import Branch, Subject, Topic  # noqa: F401

class Question(Base, TimestampMixin):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), index=True, nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id"), index=True, nullable=False)

    source = Column(String(10), default=QuestionSource.DB.value, nullable=False, index=True)
    status = Column(String(20), default=QuestionStatus.APPROVED.value, nullable=False, index=True)

    stem = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)
    correct_index = Column(Integer, nullable=False)
    solution = Column(Text, nullable=True)

    difficulty = Column(Float, default=0.5, nullable=False, index=True)
    tags = Column(JSON, nullable=True)

    # Rolling usage statistics, only ever changed through atomic UPDATEs
    attempt_count = Column(Integer, default=0, nullable=False)
    correct_count = Column(Integer, default=0, nullable=False)
    avg_time_sec = Column(Float, default=0.0, nullable=False)

    topics = relationship(
        "QuestionTopic",
        back_populates="question",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="QuestionTopic.position",
    )

    @property
    def topic_ids(self) -> list[int]:
        return [t.topic_id for t in self.topics]

    def validate_answer_key(self):
        if not self.options or len(self.options) < 2:
            raise ValueError(f"Question {self.id} needs at least two options")
        if not 0 <= self.correct_index < len(self.options):
            raise ValueError(f"Question {self.id} correct_index {self.correct_index} out of range")


class QuestionTopic(Base):
    __tablename__ = "question_topics"

    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), primary_key=True)
    topic_id = Column(Integer, ForeignKey("topics.id", ondelete="CASCADE"), primary_key=True)
    position = Column(Integer, default=0, nullable=False)

    question = relationship("Question", back_populates="topics")


Index("idx_questions_scope_difficulty", Question.branch_id, Question.subject_id, Question.difficulty, Question.status)
Index("idx_question_topics_topic", QuestionTopic.topic_id, QuestionTopic.question_id)

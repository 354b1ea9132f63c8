from sqlalchemy import Column, Integer, String, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from models.base import Base, TimestampMixin


class Branch(Base, TimestampMixin):
    """An exam track such as JEE or NEET."""
    __tablename__ = "branches"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(50), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    order = Column(Integer, default=0, nullable=False)

    subjects = relationship("Subject", back_populates="branch", lazy="selectin", order_by="Subject.order")


class Subject(Base, TimestampMixin):
    __tablename__ = "subjects"
    __table_args__ = (UniqueConstraint("branch_id", "key", name="uq_subjects_branch_key"),)

    id = Column(Integer, primary_key=True, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id", ondelete="CASCADE"), index=True, nullable=False)
    key = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False)
    order = Column(Integer, default=0, nullable=False)

    branch = relationship("Branch", back_populates="subjects")
    topics = relationship("Topic", back_populates="subject", lazy="selectin", order_by="Topic.order")

    @property
    def topic_count(self) -> int:
        return len(self.topics)


class Topic(Base, TimestampMixin):
    __tablename__ = "topics"
    __table_args__ = (UniqueConstraint("branch_id", "subject_id", "key", name="uq_topics_branch_subject_key"),)

    id = Column(Integer, primary_key=True, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id", ondelete="CASCADE"), index=True, nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), index=True, nullable=False)
    key = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False)
    # Headings from the syllabus root down to this topic
    syllabus_path = Column(JSON, default=list, nullable=False)
    order = Column(Integer, default=0, nullable=False)

    subject = relationship("Subject", back_populates="topics")

from enum import Enum


class Mode(str, Enum):
    """Session mode, mirrors the scope the student practises."""
    ALL = "all"
    SUBJECT = "subject"
    TOPIC = "topic"


class ScopeType(str, Enum):
    BRANCH = "branch"
    SUBJECT = "subject"
    TOPIC = "topic"


class QuestionStatus(str, Enum):
    APPROVED = "approved"
    PENDING = "pending"
    REJECTED = "rejected"


class QuestionSource(str, Enum):
    DB = "db"
    AI = "ai"

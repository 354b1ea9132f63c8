from sqlalchemy import Column, Integer, String
from models.base import Base, TimestampMixin

class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    # Subject id issued by the external identity provider
    external_id = Column(String(255), unique=True, index=True, nullable=False)
    role = Column(String(20), default="student", nullable=False)
    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)


from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Text, Float, DateTime, ForeignKey, JSON, UniqueConstraint
)
from sqlalchemy.orm import relationship

from quizdrill.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    username = Column(String(32), unique=True, nullable=False)
    email = Column(String(254), unique=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    streak_count = Column(Integer, default=0, nullable=False)
    last_activity = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_utcnow)

    progress = relationship("UserProgress", back_populates="user", cascade="all, delete-orphan")


class Question(Base):
    __tablename__ = "questions"

    id = Column(String(64), primary_key=True)
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    options_json = Column(JSON, nullable=True)
    category = Column(String(50), nullable=False)  # display label, e.g. "System Design"
    topic = Column(String(50), nullable=False, index=True)  # set key, e.g. "SystemsDesign"
    type = Column(String(20), nullable=False)  # QUIZ_SIMPLE/TRUE_FALSE/FILL_THE_BLANK
    level = Column(String(20), nullable=False)  # Beginner/Intermediate/Advanced
    explanation = Column(Text, nullable=True)

    progress = relationship("UserProgress", back_populates="question", cascade="all, delete-orphan")


class UserProgress(Base):
    __tablename__ = "user_progress"
    __table_args__ = (UniqueConstraint("user_id", "question_id", name="uq_user_progress_user_question"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(String(64), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    repetition = Column(Integer, default=0, nullable=False)
    interval = Column(Integer, default=1, nullable=False)  # days
    easiness_factor = Column(Float, default=2.5, nullable=False)
    next_review = Column(DateTime, default=_utcnow, nullable=False, index=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="progress")
    question = relationship("Question", back_populates="progress")

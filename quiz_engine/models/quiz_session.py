from sqlalchemy import Column, Integer, String, DateTime, JSON, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.ext.mutable import MutableDict
from quiz_engine.database import Base
from quiz_engine.utils.time_utils import get_utc_time
from enum import Enum

class SessionStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    EXPIRED = "expired"

TERMINAL_STATUSES = (SessionStatus.COMPLETED.value, SessionStatus.EXPIRED.value)
LIVE_STATUSES = (SessionStatus.ACTIVE.value, SessionStatus.PAUSED.value)

class QuizSession(Base):
    __tablename__ = "quiz_sessions"

    id = Column(Integer, primary_key=True)
    session_token = Column(String(64), unique=True, nullable=False, index=True)
    quiz_id = Column(String, ForeignKey("quizzes.id"), nullable=False)
    user_id = Column(String, nullable=True)
    participant_email = Column(String, nullable=False)
    participant_identifier = Column(String, nullable=True)  # e.g. membership number
    status = Column(String(20), nullable=False, default=SessionStatus.ACTIVE.value)

    started_at = Column(DateTime(timezone=True), nullable=False)
    paused_at = Column(DateTime(timezone=True), nullable=True)
    resumed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)  # null for untimed quizzes

    time_spent_seconds = Column(Integer, nullable=False, default=0)
    remaining_seconds = Column(Integer, nullable=True)
    # Client-reported progress, passed through untouched
    session_metadata = Column("metadata", MutableDict.as_mutable(JSON), nullable=False, default=dict)
    score_result = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), default=get_utc_time)
    updated_at = Column(DateTime(timezone=True), default=get_utc_time, onupdate=get_utc_time)

    # At most one ACTIVE session per participant per quiz
    __table_args__ = (
        Index(
            "uq_quiz_sessions_active_participant",
            "quiz_id",
            "participant_email",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
        Index("ix_quiz_sessions_status_expires_at", "status", "expires_at"),
    )

    # Relationships
    quiz = relationship("Quiz", back_populates="sessions")
    response = relationship("Response", back_populates="session", uselist=False)

    def __repr__(self):
        return f"<QuizSession(id={self.id}, token={self.session_token}, quiz_id={self.quiz_id}, status={self.status})>"

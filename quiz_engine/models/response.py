from sqlalchemy import Column, Integer, DateTime, JSON, ForeignKey
from sqlalchemy.orm import relationship
from quiz_engine.database import Base
from quiz_engine.utils.time_utils import get_utc_time

class Response(Base):
    __tablename__ = "responses"

    id = Column(Integer, primary_key=True)
    # One answer sheet per session
    session_id = Column(Integer, ForeignKey("quiz_sessions.id"), nullable=False, unique=True)
    answers = Column(JSON, nullable=False, default=dict)  # {question_id: submitted_answer or null}
    submitted_at = Column(DateTime(timezone=True), default=get_utc_time)

    # Relationships
    session = relationship("QuizSession", back_populates="response")

    def __repr__(self):
        return f"<Response(id={self.id}, session_id={self.session_id})>"

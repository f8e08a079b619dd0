from sqlalchemy import Column, String, DateTime, Integer, Boolean
from sqlalchemy.orm import relationship
from quiz_engine.database import Base

class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(String, primary_key=True)  # UUID or generated code
    title = Column(String, nullable=False)
    is_active = Column(Boolean, default=True)
    is_published = Column(Boolean, default=False)
    start_time = Column(DateTime(timezone=True), nullable=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    duration = Column(Integer, nullable=True)  # In minutes, null for untimed quizzes
    passing_score = Column(Integer, default=70)

    # Relationships
    questions = relationship("Question", back_populates="quiz", cascade="all, delete-orphan")
    sessions = relationship("QuizSession", back_populates="quiz")
    scoring_policies = relationship("ScoringPolicy", back_populates="quiz", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Quiz(id={self.id}, title={self.title}, is_published={self.is_published})>"

from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from quiz_engine.database import Base

class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True)
    quiz_id = Column(String, ForeignKey("quizzes.id"), nullable=False, index=True)
    question_text = Column(String, nullable=False)
    correct_answer = Column(String, nullable=False)

    quiz = relationship("Quiz", back_populates="questions")

    def __repr__(self):
        return f"<Question(id={self.id}, quiz_id={self.quiz_id}, text={self.question_text[:20]})>"

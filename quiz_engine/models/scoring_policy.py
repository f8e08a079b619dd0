from sqlalchemy import Column, Integer, String, Boolean, Float, DateTime, JSON, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from quiz_engine.database import Base
from quiz_engine.utils.time_utils import get_utc_time
from enum import Enum

class ScoringMode(str, Enum):
    STANDARD = "standard"
    IQ = "iq"

class ScoringPolicy(Base):
    __tablename__ = "scoring_policies"

    id = Column(Integer, primary_key=True)
    quiz_id = Column(String, ForeignKey("quizzes.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    mode = Column(String(20), nullable=False, default=ScoringMode.STANDARD.value)

    # Standard mode
    points_per_correct = Column(Float, nullable=False, default=10)
    penalty_per_incorrect = Column(Float, nullable=False, default=0)
    penalty_per_unanswered = Column(Float, nullable=False, default=0)
    flat_bonus = Column(Float, nullable=False, default=0)
    multiplier = Column(Float, nullable=False, default=1.0)
    time_bonus_enabled = Column(Boolean, nullable=False, default=False)
    bonus_per_second_saved = Column(Float, nullable=False, default=0.0)
    min_score = Column(Float, nullable=True)
    max_score = Column(Float, nullable=True)
    passing_score = Column(Float, nullable=True)  # Overrides the quiz passing score

    # IQ mode: {correct_count: score}, null means the default table
    iq_score_table = Column(JSON, nullable=True)

    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=get_utc_time)
    updated_at = Column(DateTime(timezone=True), default=get_utc_time, onupdate=get_utc_time)

    # Policy names are unique per quiz; multipliers never flip the sign of a score
    __table_args__ = (
        UniqueConstraint("quiz_id", "name", name="unique_quiz_policy_name"),
        CheckConstraint("multiplier >= 0", name="check_policy_multiplier_non_negative"),
    )

    quiz = relationship("Quiz", back_populates="scoring_policies")

    def __repr__(self):
        return f"<ScoringPolicy(id={self.id}, quiz_id={self.quiz_id}, name={self.name}, mode={self.mode})>"

from typing import List, Optional
from sqlalchemy import case, update
from sqlalchemy.orm import Session
from quiz_engine.errors import NotFoundError, PolicyMismatchError
from quiz_engine.models import ScoringPolicy
from quiz_engine.models.results import AttemptAnswers, QuizInfo, ScoreResult
from quiz_engine.utils import scoring
import logging

logger = logging.getLogger(__name__)

class ScoringService:
    """Scoring policy lookups, activation and evaluation for one request"""

    def __init__(self, db: Session):
        self.db = db

    def get_policy(self, policy_id: int) -> ScoringPolicy:
        policy = self.db.get(ScoringPolicy, policy_id)
        if policy is None:
            raise NotFoundError(f"Scoring policy with ID {policy_id} not found")
        return policy

    def list_policies(self, quiz_id: str) -> List[ScoringPolicy]:
        return (
            self.db.query(ScoringPolicy)
            .filter(ScoringPolicy.quiz_id == quiz_id)
            .order_by(ScoringPolicy.id)
            .all()
        )

    def get_active_policy(self, quiz_id: str) -> Optional[ScoringPolicy]:
        return (
            self.db.query(ScoringPolicy)
            .filter(ScoringPolicy.quiz_id == quiz_id, ScoringPolicy.is_active.is_(True))
            .order_by(ScoringPolicy.id)
            .first()
        )

    def set_active_policy(self, quiz_id: str, policy_id: int) -> ScoringPolicy:
        """Activate one policy and deactivate its siblings in a single statement"""
        policy = self.get_policy(policy_id)
        if policy.quiz_id != quiz_id:
            raise NotFoundError(f"Scoring policy with ID {policy_id} not found for quiz {quiz_id}")

        try:
            self.db.execute(
                update(ScoringPolicy)
                .where(ScoringPolicy.quiz_id == quiz_id)
                .values(is_active=case((ScoringPolicy.id == policy_id, True), else_=False))
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.expire_all()
        logger.info(f"Scoring policy {policy_id} is now active for quiz {quiz_id}")
        return self.get_policy(policy_id)

    def evaluate(
        self,
        policy: ScoringPolicy,
        quiz: QuizInfo,
        attempt: AttemptAnswers,
        time_spent_seconds: Optional[int] = None,
        time_budget_seconds: Optional[int] = None,
    ) -> ScoreResult:
        """Score an answer set after checking the policy belongs to the quiz"""
        try:
            if policy.quiz_id != quiz.id:
                raise PolicyMismatchError(
                    f"Scoring policy {policy.id} belongs to quiz {policy.quiz_id}, not quiz {quiz.id}"
                )
            return scoring.evaluate(
                policy,
                attempt,
                passing_score=quiz.passing_score,
                time_spent_seconds=time_spent_seconds,
                time_budget_seconds=time_budget_seconds,
            )
        except PolicyMismatchError as e:
            logger.error(f"Data integrity fault while scoring quiz {quiz.id}: {e.message}")
            raise

    def calculate_for_session(
        self,
        session,
        policy_id: int,
        quiz: QuizInfo,
        attempt: AttemptAnswers,
    ) -> ScoreResult:
        """Preview a session's score under any policy of its quiz"""
        policy = self.get_policy(policy_id)
        return self.evaluate(policy, quiz, attempt, time_spent_seconds=session.time_spent_seconds)

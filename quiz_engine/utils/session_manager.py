from datetime import timedelta
from typing import List, Optional, Tuple
import logging
import uuid

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quiz_engine.config import settings
from quiz_engine.errors import (
    InvalidTimeUpdateError,
    InvalidTransitionError,
    NotFoundError,
    OwnershipMismatchError,
    QuizNotAvailableError,
    SessionExpiredError,
)
from quiz_engine.models import QuizSession, SessionStatus
from quiz_engine.models.results import ScoreResult, SessionStatistics
from quiz_engine.utils import session_clock
from quiz_engine.utils.collaborators import (
    AnswerSource,
    DatabaseAnswerSource,
    DatabaseQuizLookup,
    QuizLookup,
)
from quiz_engine.utils.scoring_service import ScoringService
from quiz_engine.utils.time_utils import SystemClock, ensure_aware, format_time_for_display

logger = logging.getLogger(__name__)

def normalize_email(email: str) -> str:
    return (email or "").strip().lower()

class SessionManager:
    """State machine for quiz attempt sessions.

    One instance serves one request: every operation reads the session row,
    checks it against the clock and writes it back conditionally. The stored
    row is the only source of truth; nothing is cached between calls.

    Transitions:
        start:        (none) -> active
        pause:        active -> paused
        resume:       paused -> active
        update_time:  active -> active, or expired when remaining time runs out
        complete:     active/paused -> completed
    Completed and expired sessions are terminal.
    """

    def __init__(
        self,
        db: Session,
        quiz_lookup: Optional[QuizLookup] = None,
        answer_source: Optional[AnswerSource] = None,
        clock=None,
        scoring_service: Optional[ScoringService] = None,
    ):
        self.db = db
        self.quiz_lookup = quiz_lookup or DatabaseQuizLookup(db)
        self.answer_source = answer_source or DatabaseAnswerSource(db)
        self.clock = clock or SystemClock()
        self.scoring = scoring_service or ScoringService(db)

    def _now(self):
        return ensure_aware(self.clock.now())

    def _new_token(self) -> str:
        return f"{settings.session_token_prefix}{uuid.uuid4().hex}"

    def _find_active(self, quiz_id: str, participant_email: str) -> Optional[QuizSession]:
        return (
            self.db.query(QuizSession)
            .filter(
                QuizSession.quiz_id == quiz_id,
                QuizSession.participant_email == participant_email,
                QuizSession.status == SessionStatus.ACTIVE.value,
            )
            .first()
        )

    def _get_for_update(self, session_token: str) -> QuizSession:
        session = (
            self.db.query(QuizSession)
            .filter(QuizSession.session_token == session_token)
            .with_for_update()
            .first()
        )
        if session is None:
            self.db.rollback()
            raise NotFoundError(f"Session with token {session_token} not found")
        return session

    def _commit(self, session: QuizSession) -> QuizSession:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(session)
        return session

    def _expire(self, session: QuizSession) -> None:
        session.status = SessionStatus.EXPIRED.value
        self._commit(session)
        logger.info(f"Session {session.session_token} expired")

    def _ensure_mutable(self, session: QuizSession, now) -> None:
        """Reject terminal sessions and expire ones whose deadline has passed"""
        if session.status == SessionStatus.COMPLETED.value:
            self.db.rollback()
            raise InvalidTransitionError("Quiz session is already completed")
        if session.status == SessionStatus.EXPIRED.value:
            self.db.rollback()
            raise SessionExpiredError()
        if session_clock.is_expired(session, now):
            self._expire(session)
            raise SessionExpiredError()

    # Lifecycle operations

    def start(
        self,
        quiz_id: str,
        participant_email: str,
        user_id: Optional[str] = None,
        participant_identifier: Optional[str] = None,
    ) -> QuizSession:
        """Start a session, or return the participant's live active one"""
        email = normalize_email(participant_email)

        quiz = self.quiz_lookup.get_quiz(quiz_id)
        if quiz is None or not quiz.is_active or not quiz.is_published:
            raise NotFoundError(f"Active quiz with ID {quiz_id} not found")

        now = self._now()
        if quiz.start_time and now < ensure_aware(quiz.start_time):
            raise QuizNotAvailableError("Quiz has not started yet", bound="start")
        if quiz.end_time and now > ensure_aware(quiz.end_time):
            raise QuizNotAvailableError("Quiz has ended", bound="end")

        existing = self._find_active(quiz_id, email)
        if existing:
            if not session_clock.is_expired(existing, now):
                return existing
            self._expire(existing)

        expires_at = None
        remaining_seconds = None
        if quiz.duration_minutes:
            expires_at = now + timedelta(minutes=quiz.duration_minutes)
            remaining_seconds = quiz.duration_minutes * 60

        session = QuizSession(
            session_token=self._new_token(),
            quiz_id=quiz_id,
            user_id=user_id,
            participant_email=email,
            participant_identifier=participant_identifier,
            status=SessionStatus.ACTIVE.value,
            started_at=now,
            expires_at=expires_at,
            remaining_seconds=remaining_seconds,
            time_spent_seconds=0,
            session_metadata={},
        )
        self.db.add(session)
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent start for the same participant won the insert
            self.db.rollback()
            existing = self._find_active(quiz_id, email)
            if existing is None:
                raise
            logger.info(f"Concurrent start for quiz {quiz_id} resolved to session {existing.session_token}")
            return existing

        self.db.refresh(session)
        if expires_at:
            logger.info(
                f"Session {session.session_token} started for quiz {quiz_id}, "
                f"expires at {format_time_for_display(expires_at, settings.timezone)}"
            )
        else:
            logger.info(f"Session {session.session_token} started for untimed quiz {quiz_id}")
        return session

    def resume(self, session_token: str, participant_email: str) -> QuizSession:
        session = (
            self.db.query(QuizSession)
            .filter(QuizSession.session_token == session_token)
            .with_for_update()
            .first()
        )
        if session is None:
            self.db.rollback()
            raise NotFoundError("Session not found or invalid credentials")
        if session.participant_email != normalize_email(participant_email):
            self.db.rollback()
            logger.warning(f"Resume of session {session_token} rejected: participant email mismatch")
            raise OwnershipMismatchError()

        now = self._now()
        self._ensure_mutable(session, now)

        if session.status == SessionStatus.PAUSED.value:
            session.status = SessionStatus.ACTIVE.value
            session.resumed_at = now
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                raise InvalidTransitionError("Another active session exists for this participant and quiz")
            self.db.refresh(session)
            logger.info(f"Session {session_token} resumed")
        else:
            self.db.rollback()

        return session

    def pause(self, session_token: str) -> QuizSession:
        session = self._get_for_update(session_token)
        now = self._now()
        self._ensure_mutable(session, now)

        if session.status != SessionStatus.ACTIVE.value:
            self.db.rollback()
            raise InvalidTransitionError("Can only pause active sessions")

        session.status = SessionStatus.PAUSED.value
        session.paused_at = now
        self._commit(session)
        logger.info(f"Session {session_token} paused after {session_clock.total_elapsed(session, now)}s")
        return session

    def update_time(self, session_token: str, additional_seconds: int, metadata: Optional[dict] = None) -> QuizSession:
        """Add client-reported active time and merge progress metadata.

        When the remaining time reaches zero the session expires here and is
        returned as expired; it is not scored.
        """
        if additional_seconds is None or additional_seconds < 0:
            raise InvalidTimeUpdateError("additional_seconds must be zero or positive")

        session = self._get_for_update(session_token)
        now = self._now()
        self._ensure_mutable(session, now)

        if session.status != SessionStatus.ACTIVE.value:
            self.db.rollback()
            raise InvalidTransitionError("Session is not active")

        session.time_spent_seconds = (session.time_spent_seconds or 0) + additional_seconds
        if session.remaining_seconds is not None:
            session.remaining_seconds = max(0, session.remaining_seconds - additional_seconds)

        if metadata:
            session.session_metadata = {**(session.session_metadata or {}), **metadata}

        if session.remaining_seconds is not None and session.remaining_seconds <= 0:
            session.status = SessionStatus.EXPIRED.value
            if session.expires_at is None or ensure_aware(session.expires_at) > now:
                session.expires_at = now
            logger.info(f"Session {session_token} ran out of time")

        return self._commit(session)

    def complete(self, session_token: str) -> Tuple[QuizSession, Optional[ScoreResult]]:
        """Complete and score a session.

        Completing an already completed session returns the stored result, so
        client retries never score twice. Returns a None result when the quiz
        has no active scoring policy.
        """
        session = self._get_for_update(session_token)

        if session.status == SessionStatus.COMPLETED.value:
            self.db.rollback()
            return session, self._stored_result(session)
        if session.status == SessionStatus.EXPIRED.value:
            self.db.rollback()
            raise SessionExpiredError("Session has expired and cannot be completed")

        now = self._now()
        time_spent = session_clock.elapsed_since(session.started_at, now)

        try:
            result = self._score(session, time_spent)
        except Exception:
            self.db.rollback()
            raise

        session.status = SessionStatus.COMPLETED.value
        session.completed_at = now
        session.time_spent_seconds = time_spent
        session.score_result = result.model_dump(mode="json") if result else None
        self._commit(session)

        if result:
            logger.info(
                f"Session {session_token} completed in {time_spent}s: "
                f"score={result.score} passed={result.passed}"
            )
        else:
            logger.info(f"Session {session_token} completed in {time_spent}s without scoring")
        return session, result

    # Scoring

    def _stored_result(self, session: QuizSession) -> Optional[ScoreResult]:
        if session.score_result is None:
            return None
        return ScoreResult.model_validate(session.score_result)

    def _score(self, session: QuizSession, time_spent_seconds: int) -> Optional[ScoreResult]:
        quiz = self.quiz_lookup.get_quiz(session.quiz_id)
        if quiz is None:
            raise NotFoundError(f"Quiz with ID {session.quiz_id} not found")

        policy = self.scoring.get_active_policy(quiz.id)
        if policy is None:
            logger.warning(f"Quiz {quiz.id} has no active scoring policy; session {session.session_token} left unscored")
            return None

        attempt = self.answer_source.get_attempt_answers(session)
        return self.scoring.evaluate(policy, quiz, attempt, time_spent_seconds=time_spent_seconds)

    def preview_score(self, session_token: str, policy_id: int) -> ScoreResult:
        """Score a session under any policy of its quiz without storing it"""
        session = self.find_by_token(session_token)
        quiz = self.quiz_lookup.get_quiz(session.quiz_id)
        if quiz is None:
            raise NotFoundError(f"Quiz with ID {session.quiz_id} not found")

        attempt = self.answer_source.get_attempt_answers(session)
        return self.scoring.calculate_for_session(session, policy_id, quiz, attempt)

    # Lookups

    def find_by_token(self, session_token: str) -> QuizSession:
        session = self.db.query(QuizSession).filter(QuizSession.session_token == session_token).first()
        if session is None:
            raise NotFoundError(f"Session with token {session_token} not found")
        return session

    def find_latest(self, quiz_id: str, participant_email: str) -> Optional[QuizSession]:
        return (
            self.db.query(QuizSession)
            .filter(
                QuizSession.quiz_id == quiz_id,
                QuizSession.participant_email == normalize_email(participant_email),
            )
            .order_by(QuizSession.started_at.desc(), QuizSession.id.desc())
            .first()
        )

    def find_latest_for_user(self, quiz_id: str, user_id: str) -> Optional[QuizSession]:
        return (
            self.db.query(QuizSession)
            .filter(QuizSession.quiz_id == quiz_id, QuizSession.user_id == user_id)
            .order_by(QuizSession.started_at.desc(), QuizSession.id.desc())
            .first()
        )

    def get_sessions_by_quiz(self, quiz_id: str) -> List[QuizSession]:
        """Every session of a quiz, newest first"""
        return (
            self.db.query(QuizSession)
            .filter(QuizSession.quiz_id == quiz_id)
            .order_by(QuizSession.started_at.desc(), QuizSession.id.desc())
            .all()
        )

    def get_active_sessions(self, quiz_id: Optional[str] = None) -> List[QuizSession]:
        query = self.db.query(QuizSession).filter(QuizSession.status == SessionStatus.ACTIVE.value)
        if quiz_id is not None:
            query = query.filter(QuizSession.quiz_id == quiz_id)
        return query.order_by(QuizSession.started_at.desc()).all()

    def get_statistics(self, quiz_id: str) -> SessionStatistics:
        rows = (
            self.db.query(QuizSession.status, func.count(QuizSession.id))
            .filter(QuizSession.quiz_id == quiz_id)
            .group_by(QuizSession.status)
            .all()
        )
        counts = {status: count for status, count in rows}
        average = (
            self.db.query(func.avg(QuizSession.time_spent_seconds))
            .filter(QuizSession.quiz_id == quiz_id)
            .scalar()
        )

        return SessionStatistics(
            quiz_id=quiz_id,
            total_sessions=sum(counts.values()),
            active_sessions=counts.get(SessionStatus.ACTIVE.value, 0),
            paused_sessions=counts.get(SessionStatus.PAUSED.value, 0),
            completed_sessions=counts.get(SessionStatus.COMPLETED.value, 0),
            expired_sessions=counts.get(SessionStatus.EXPIRED.value, 0),
            average_time_spent=round(average) if average is not None else 0,
        )

import pytest
from datetime import datetime, timedelta
from types import SimpleNamespace
from httpx import AsyncClient, ASGITransport
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
import pytz

from quiz_engine.database import Base, get_db
from quiz_engine.deps import get_clock
from quiz_engine.main import create_app
from quiz_engine.models import Quiz, Question, Response, ScoringPolicy
from quiz_engine.utils.session_manager import SessionManager

# Monday morning, well inside any test quiz window
T0 = datetime(2026, 3, 2, 9, 0, 0, tzinfo=pytz.UTC)

class FrozenClock:
    """Clock that only moves when a test moves it"""

    def __init__(self, now: datetime = T0):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: int = 0, minutes: int = 0):
        self.current = self.current + timedelta(seconds=seconds, minutes=minutes)
        return self.current

@pytest.fixture
def clock():
    return FrozenClock()

@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so separate sessions use separate connections"""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'quiz_engine_test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()

@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()

@pytest.fixture
def manager(db, clock):
    return SessionManager(db, clock=clock)

@pytest.fixture
def make_quiz(db):
    """Create a quiz with question_count questions whose correct answer is 'a'"""
    def _make_quiz(
        quiz_id: str = "quiz-1",
        duration=30,
        question_count: int = 10,
        is_active: bool = True,
        is_published: bool = True,
        start_time=None,
        end_time=None,
        passing_score: int = 70,
    ) -> Quiz:
        quiz = Quiz(
            id=quiz_id,
            title=f"Test Quiz {quiz_id}",
            is_active=is_active,
            is_published=is_published,
            start_time=start_time,
            end_time=end_time,
            duration=duration,
            passing_score=passing_score,
        )
        db.add(quiz)
        for number in range(1, question_count + 1):
            db.add(Question(quiz_id=quiz_id, question_text=f"Question {number}", correct_answer="a"))
        db.commit()
        return quiz
    return _make_quiz

@pytest.fixture
def make_policy(db):
    """Persist a scoring policy; active unless told otherwise"""
    def _make_policy(quiz_id: str = "quiz-1", name: str = "Standard Scoring", **fields) -> ScoringPolicy:
        fields.setdefault("is_active", True)
        policy = ScoringPolicy(quiz_id=quiz_id, name=name, **fields)
        db.add(policy)
        db.commit()
        db.refresh(policy)
        return policy
    return _make_policy

@pytest.fixture
def submit_answers(db):
    """Store an answer sheet for a session: `correct` right answers, then `incorrect` wrong ones"""
    def _submit_answers(session, correct: int = 0, incorrect: int = 0, extra: dict = None) -> Response:
        questions = db.query(Question).filter(Question.quiz_id == session.quiz_id).order_by(Question.id).all()
        answers = {}
        for question in questions[:correct]:
            answers[str(question.id)] = "a"
        for question in questions[correct:correct + incorrect]:
            answers[str(question.id)] = "b"
        if extra:
            answers.update(extra)

        response = Response(session_id=session.id, answers=answers)
        db.add(response)
        db.commit()
        return response
    return _submit_answers

@pytest.fixture
def policy_factory():
    """In-memory policy objects for the pure scoring functions"""
    def _policy(**overrides):
        values = {
            "id": 1,
            "quiz_id": "quiz-1",
            "name": "Standard Scoring",
            "mode": "standard",
            "points_per_correct": 10,
            "penalty_per_incorrect": 0,
            "penalty_per_unanswered": 0,
            "flat_bonus": 0,
            "multiplier": 1.0,
            "time_bonus_enabled": False,
            "bonus_per_second_saved": 0.0,
            "min_score": None,
            "max_score": None,
            "passing_score": None,
            "iq_score_table": None,
            "is_active": True,
        }
        values.update(overrides)
        return SimpleNamespace(**values)
    return _policy

@pytest.fixture
async def client(session_factory, clock):
    """API client bound to the test database and clock"""
    app = create_app(session_factory=session_factory, clock=clock)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


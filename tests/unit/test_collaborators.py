from datetime import datetime
import pytz

from quiz_engine.config import settings
from quiz_engine.models import Question
from quiz_engine.utils.collaborators import DatabaseAnswerSource, DatabaseQuizLookup

class TestDatabaseQuizLookup:
    """Test quiz availability reads"""

    def test_get_quiz(self, db, make_quiz):
        start = datetime(2026, 3, 1, tzinfo=pytz.UTC)
        make_quiz(duration=45, start_time=start, passing_score=60)

        quiz = DatabaseQuizLookup(db).get_quiz("quiz-1")

        assert quiz.id == "quiz-1"
        assert quiz.is_active is True
        assert quiz.is_published is True
        assert quiz.duration_minutes == 45
        assert quiz.passing_score == 60
        assert quiz.start_time.replace(tzinfo=None) == start.replace(tzinfo=None)

    def test_missing_quiz(self, db):
        assert DatabaseQuizLookup(db).get_quiz("nope") is None

    def test_missing_passing_score_uses_default(self, db, make_quiz):
        quiz = make_quiz()
        quiz.passing_score = None
        db.commit()

        assert DatabaseQuizLookup(db).get_quiz("quiz-1").passing_score == settings.default_passing_score

class TestDatabaseAnswerSource:
    """Test answer set assembly"""

    def test_answers_and_question_bank(self, db, make_quiz, manager, submit_answers):
        make_quiz(question_count=4)
        session = manager.start("quiz-1", "participant@example.com")
        submit_answers(session, correct=2, incorrect=1)

        attempt = DatabaseAnswerSource(db).get_attempt_answers(session)

        assert attempt.total_questions == 4
        assert set(attempt.question_bank.values()) == {"a"}
        assert len(attempt.answers) == 3
        assert sorted(a.answer for a in attempt.answers) == ["a", "a", "b"]

    def test_no_answer_sheet(self, db, make_quiz, manager):
        make_quiz(question_count=3)
        session = manager.start("quiz-1", "participant@example.com")

        attempt = DatabaseAnswerSource(db).get_attempt_answers(session)

        assert attempt.answers == []
        assert attempt.total_questions == 3

    def test_non_string_answers_are_stringified(self, db, make_quiz, manager, submit_answers):
        make_quiz(question_count=1)
        question = db.query(Question).filter(Question.quiz_id == "quiz-1").first()
        question.correct_answer = "4"
        db.commit()
        session = manager.start("quiz-1", "participant@example.com")
        submit_answers(session, extra={str(question.id): 4})

        attempt = DatabaseAnswerSource(db).get_attempt_answers(session)

        assert attempt.answers[0].answer == "4"
        assert attempt.question_bank[str(question.id)] == "4"

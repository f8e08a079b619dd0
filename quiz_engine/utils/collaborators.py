from typing import Optional, Protocol
from sqlalchemy.orm import Session
from quiz_engine.models import Quiz, Question, Response
from quiz_engine.models.results import QuizInfo, AttemptAnswers, SubmittedAnswer
from quiz_engine.config import settings

class QuizLookup(Protocol):
    def get_quiz(self, quiz_id: str) -> Optional[QuizInfo]:
        ...

class AnswerSource(Protocol):
    def get_attempt_answers(self, session) -> AttemptAnswers:
        ...

class DatabaseQuizLookup:
    """Reads quiz availability and timing from the quizzes table"""

    def __init__(self, db: Session):
        self.db = db

    def get_quiz(self, quiz_id: str) -> Optional[QuizInfo]:
        quiz = self.db.get(Quiz, quiz_id)
        if quiz is None:
            return None

        passing_score = quiz.passing_score
        if passing_score is None:
            passing_score = settings.default_passing_score

        return QuizInfo(
            id=quiz.id,
            is_active=bool(quiz.is_active),
            is_published=bool(quiz.is_published),
            start_time=quiz.start_time,
            end_time=quiz.end_time,
            duration_minutes=quiz.duration,
            passing_score=passing_score,
        )

class DatabaseAnswerSource:
    """Builds the answer set for a session from its stored answer sheet"""

    def __init__(self, db: Session):
        self.db = db

    def get_attempt_answers(self, session) -> AttemptAnswers:
        questions = self.db.query(Question).filter(Question.quiz_id == session.quiz_id).order_by(Question.id).all()
        question_bank = {str(q.id): q.correct_answer for q in questions}

        response = self.db.query(Response).filter(Response.session_id == session.id).first()
        answers = []
        if response and response.answers:
            for question_id, answer in response.answers.items():
                answers.append(SubmittedAnswer(
                    question_id=str(question_id),
                    answer=None if answer is None else str(answer),
                ))

        return AttemptAnswers(answers=answers, question_bank=question_bank)

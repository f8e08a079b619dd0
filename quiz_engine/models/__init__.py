from .quiz import Quiz
from .question import Question
from .quiz_session import QuizSession, SessionStatus
from .response import Response
from .scoring_policy import ScoringPolicy, ScoringMode

__all__ = ["Quiz", "Question", "QuizSession", "SessionStatus", "Response", "ScoringPolicy", "ScoringMode"]

"""
Typed errors raised by the session lifecycle and scoring code.

Callers (the HTTP routers, background jobs) translate these into their own
error shapes; nothing here knows about HTTP.
"""


class QuizEngineError(Exception):
    """Base class for all quiz engine errors"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(QuizEngineError):
    """Unknown session token, quiz or scoring policy"""


class OwnershipMismatchError(NotFoundError):
    """Session exists but belongs to another participant.

    Carries the same message as a missing session so tokens cannot be enumerated.
    """

    def __init__(self, message: str = "Session not found or invalid credentials"):
        super().__init__(message)


class InvalidTransitionError(QuizEngineError):
    """Operation not allowed in the session's current status"""


class SessionExpiredError(QuizEngineError):
    """Session deadline has passed"""

    def __init__(self, message: str = "Session has expired"):
        super().__init__(message)


class QuizNotAvailableError(QuizEngineError):
    """Quiz start window is not open"""

    def __init__(self, message: str, bound: str):
        super().__init__(message)
        self.bound = bound


class InvalidTimeUpdateError(QuizEngineError):
    """Rejected time accounting update"""


class PolicyMismatchError(QuizEngineError):
    """Data-integrity fault between a policy, a quiz and an answer set"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

# Collaborator contracts

class QuizInfo(BaseModel):
    id: str
    is_active: bool
    is_published: bool
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    passing_score: float = 70

class SubmittedAnswer(BaseModel):
    question_id: str
    answer: Optional[str] = None

class AttemptAnswers(BaseModel):
    answers: List[SubmittedAnswer] = []
    question_bank: Dict[str, str] = {}  # question_id: correct answer

    @property
    def total_questions(self) -> int:
        return len(self.question_bank)

# Scoring output

class ScoreBreakdown(BaseModel):
    correct_answers: int
    incorrect_answers: int
    unanswered_questions: int
    correct_points: float = 0
    incorrect_penalty: float = 0
    unanswered_penalty: float = 0
    bonus_points: float = 0
    time_bonus: float = 0
    base_points: float = 0
    multiplier: float = 1.0
    raw_score: Optional[float] = None  # IQ table value
    final_score: float

class ScoreResult(BaseModel):
    mode: str
    policy_id: Optional[int] = None
    score: float
    max_possible_score: float
    percentage: float
    passed: bool
    category: Optional[str] = None
    breakdown: ScoreBreakdown

# Reporting

class SessionStatistics(BaseModel):
    quiz_id: str
    total_sessions: int = 0
    active_sessions: int = 0
    paused_sessions: int = 0
    completed_sessions: int = 0
    expired_sessions: int = 0
    average_time_spent: int = 0

class CleanupResult(BaseModel):
    expired_count: int = 0
    failed_batches: int = 0
    duration_ms: int = 0
    timestamp: datetime

class SchedulerStatus(BaseModel):
    enabled: bool
    interval_minutes: int
    batch_size: int
    running: bool = False
    last_run_at: Optional[datetime] = None
    last_expired_count: Optional[int] = None
    next_run_at: Optional[datetime] = None
    active_sessions: int = 0
    expired_sessions: int = 0

# Session view returned to callers

class SessionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    session_token: str
    quiz_id: str
    user_id: Optional[str] = None
    participant_email: str
    participant_identifier: Optional[str] = None
    status: str
    started_at: datetime
    paused_at: Optional[datetime] = None
    resumed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    time_spent_seconds: int = 0
    remaining_seconds: Optional[int] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="session_metadata")

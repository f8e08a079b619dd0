from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from quiz_engine.database import get_db
from quiz_engine.errors import (
    QuizEngineError,
    NotFoundError,
    SessionExpiredError,
    PolicyMismatchError,
)
from quiz_engine.utils.session_manager import SessionManager
from quiz_engine.utils.scoring_service import ScoringService
from quiz_engine.utils.time_utils import SystemClock
import logging

logger = logging.getLogger(__name__)

_system_clock = SystemClock()

def get_clock():
    """Source of "now" for request handlers; overridden in tests"""
    return _system_clock

def get_session_manager(db: Session = Depends(get_db), clock=Depends(get_clock)) -> SessionManager:
    return SessionManager(db, clock=clock)

def get_scoring_service(db: Session = Depends(get_db)) -> ScoringService:
    return ScoringService(db)

def get_sweeper(request: Request):
    sweeper = getattr(request.app.state, "sweeper", None)
    if sweeper is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Session cleanup scheduler not configured")
    return sweeper

def to_http_exception(error: QuizEngineError) -> HTTPException:
    """Translate a typed engine error into an HTTP error"""
    if isinstance(error, NotFoundError):
        # Ownership mismatches share this shape on purpose
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error.message)
    if isinstance(error, SessionExpiredError):
        return HTTPException(status_code=status.HTTP_410_GONE, detail=error.message)
    if isinstance(error, PolicyMismatchError):
        logger.error(f"Data integrity fault: {error.message}")
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Scoring data integrity error")
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error.message)

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from quiz_engine.deps import get_session_manager, to_http_exception
from quiz_engine.errors import NotFoundError, QuizEngineError
from quiz_engine.models.results import SessionOut
from quiz_engine.utils.session_manager import SessionManager

router = APIRouter()

class StartSessionRequest(BaseModel):
    quiz_id: str
    participant_email: str = Field(min_length=3)
    user_id: Optional[str] = None
    participant_identifier: Optional[str] = None

class ResumeSessionRequest(BaseModel):
    session_token: str
    participant_email: str

class UpdateTimeRequest(BaseModel):
    additional_seconds: int = Field(ge=0)
    metadata: Optional[Dict[str, Any]] = None

@router.post("/start")
async def start_session(body: StartSessionRequest, manager: SessionManager = Depends(get_session_manager)):
    """Start a quiz session or return the participant's live one"""
    try:
        session = manager.start(
            body.quiz_id,
            body.participant_email,
            user_id=body.user_id,
            participant_identifier=body.participant_identifier,
        )
        return SessionOut.model_validate(session)
    except QuizEngineError as e:
        raise to_http_exception(e)

@router.post("/resume")
async def resume_session(body: ResumeSessionRequest, manager: SessionManager = Depends(get_session_manager)):
    try:
        session = manager.resume(body.session_token, body.participant_email)
        return SessionOut.model_validate(session)
    except QuizEngineError as e:
        raise to_http_exception(e)

@router.post("/{session_token}/pause")
async def pause_session(session_token: str, manager: SessionManager = Depends(get_session_manager)):
    try:
        return SessionOut.model_validate(manager.pause(session_token))
    except QuizEngineError as e:
        raise to_http_exception(e)

@router.post("/{session_token}/time")
async def update_session_time(session_token: str, body: UpdateTimeRequest, manager: SessionManager = Depends(get_session_manager)):
    """Report active time spent and client progress"""
    try:
        session = manager.update_time(session_token, body.additional_seconds, metadata=body.metadata)
        return SessionOut.model_validate(session)
    except QuizEngineError as e:
        raise to_http_exception(e)

@router.post("/{session_token}/complete")
async def complete_session(session_token: str, manager: SessionManager = Depends(get_session_manager)):
    """Complete a session and return its score; safe to retry"""
    try:
        session, result = manager.complete(session_token)
        return {
            "session": SessionOut.model_validate(session),
            "result": result,
        }
    except QuizEngineError as e:
        raise to_http_exception(e)

@router.get("/active")
async def list_active_sessions(quiz_id: Optional[str] = None, manager: SessionManager = Depends(get_session_manager)):
    return [SessionOut.model_validate(s) for s in manager.get_active_sessions(quiz_id)]

@router.get("/quiz/{quiz_id}")
async def list_quiz_sessions(quiz_id: str, manager: SessionManager = Depends(get_session_manager)):
    """All sessions of a quiz, newest first"""
    return [SessionOut.model_validate(s) for s in manager.get_sessions_by_quiz(quiz_id)]

@router.get("/quiz/{quiz_id}/statistics")
async def get_session_statistics(quiz_id: str, manager: SessionManager = Depends(get_session_manager)):
    try:
        return manager.get_statistics(quiz_id)
    except QuizEngineError as e:
        raise to_http_exception(e)

@router.get("/email/{email}/quiz/{quiz_id}")
async def get_latest_session_by_email(email: str, quiz_id: str, manager: SessionManager = Depends(get_session_manager)):
    try:
        session = manager.find_latest(quiz_id, email)
        if session is None:
            raise NotFoundError(f"No session found for {email} on quiz {quiz_id}")
        return SessionOut.model_validate(session)
    except QuizEngineError as e:
        raise to_http_exception(e)

@router.get("/user/{user_id}/quiz/{quiz_id}")
async def get_latest_session_by_user(user_id: str, quiz_id: str, manager: SessionManager = Depends(get_session_manager)):
    try:
        session = manager.find_latest_for_user(quiz_id, user_id)
        if session is None:
            raise NotFoundError(f"No session found for user {user_id} on quiz {quiz_id}")
        return SessionOut.model_validate(session)
    except QuizEngineError as e:
        raise to_http_exception(e)

@router.get("/{session_token}")
async def get_session(session_token: str, manager: SessionManager = Depends(get_session_manager)):
    try:
        return SessionOut.model_validate(manager.find_by_token(session_token))
    except QuizEngineError as e:
        raise to_http_exception(e)

@router.get("/{session_token}/preview/{policy_id}")
async def preview_session_score(session_token: str, policy_id: int, manager: SessionManager = Depends(get_session_manager)):
    """Score a session under another policy of its quiz without storing it"""
    try:
        return manager.preview_score(session_token, policy_id)
    except QuizEngineError as e:
        raise to_http_exception(e)

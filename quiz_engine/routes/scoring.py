from fastapi import APIRouter, Depends
from quiz_engine.deps import get_scoring_service, to_http_exception
from quiz_engine.errors import QuizEngineError
from quiz_engine.utils.scoring_service import ScoringService

router = APIRouter()

@router.post("/quizzes/{quiz_id}/policies/{policy_id}/activate")
async def activate_policy(quiz_id: str, policy_id: int, service: ScoringService = Depends(get_scoring_service)):
    """Make one policy the quiz's only active policy"""
    try:
        policy = service.set_active_policy(quiz_id, policy_id)
        return {
            "id": policy.id,
            "quiz_id": policy.quiz_id,
            "name": policy.name,
            "mode": policy.mode,
            "is_active": policy.is_active,
        }
    except QuizEngineError as e:
        raise to_http_exception(e)

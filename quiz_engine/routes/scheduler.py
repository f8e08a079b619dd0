from fastapi import APIRouter, Depends
from quiz_engine.deps import get_sweeper
from quiz_engine.utils.expiration_sweeper import ExpirationSweeper

router = APIRouter()

@router.get("/status")
async def get_scheduler_status(sweeper: ExpirationSweeper = Depends(get_sweeper)):
    """Sweeper configuration and current active/expired session counts"""
    return sweeper.get_status()

# Plain def so a long sweep runs in the threadpool, off the event loop
@router.post("/cleanup")
def trigger_cleanup(sweeper: ExpirationSweeper = Depends(get_sweeper)):
    """Expire past-deadline sessions now"""
    return sweeper.manual_cleanup()

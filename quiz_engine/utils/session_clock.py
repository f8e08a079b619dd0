"""
Time math over a session's recorded timestamps.

Every function takes "now" explicitly, so results depend only on the
session snapshot and the instant passed in.
"""
from datetime import datetime
from typing import Optional
import math

from quiz_engine.models.quiz_session import SessionStatus
from quiz_engine.utils.time_utils import ensure_aware


def elapsed_since(started_at: datetime, now: datetime) -> int:
    """Whole seconds between two instants, floored, never negative"""
    if started_at is None:
        return 0
    delta = (ensure_aware(now) - ensure_aware(started_at)).total_seconds()
    return max(0, math.floor(delta))


def total_elapsed(session, now: datetime) -> int:
    """Elapsed seconds as of the session's last recorded event.

    Completed sessions stop at completed_at and paused sessions at paused_at,
    so repeated calls return the same value no matter when they are made.
    """
    if session.status == SessionStatus.COMPLETED.value and session.completed_at:
        return elapsed_since(session.started_at, session.completed_at)
    if session.status == SessionStatus.PAUSED.value and session.paused_at:
        return elapsed_since(session.started_at, session.paused_at)
    return elapsed_since(session.started_at, now)


def is_expired(session, now: datetime) -> bool:
    if session.expires_at is None:
        return False
    return ensure_aware(now) > ensure_aware(session.expires_at)


def is_active(session, now: datetime) -> bool:
    return session.status == SessionStatus.ACTIVE.value and not is_expired(session, now)


def remaining_until_deadline(session, now: datetime) -> Optional[int]:
    """Seconds left before expires_at, or None for untimed sessions"""
    if session.expires_at is None:
        return None
    delta = (ensure_aware(session.expires_at) - ensure_aware(now)).total_seconds()
    return max(0, math.floor(delta))

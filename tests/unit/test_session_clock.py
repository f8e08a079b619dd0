import pytest
from datetime import datetime, timedelta
from types import SimpleNamespace
import pytz

from quiz_engine.models import SessionStatus
from quiz_engine.utils import session_clock
from quiz_engine.utils.time_utils import ensure_aware, convert_to_zone

T = datetime(2026, 3, 2, 9, 0, 0, tzinfo=pytz.UTC)

def make_session(status=SessionStatus.ACTIVE.value, **fields):
    values = {
        "status": status,
        "started_at": T,
        "paused_at": None,
        "completed_at": None,
        "expires_at": None,
    }
    values.update(fields)
    return SimpleNamespace(**values)

class TestElapsedSince:
    """Test whole-second elapsed time"""

    def test_floors_partial_seconds(self):
        assert session_clock.elapsed_since(T, T + timedelta(seconds=59, milliseconds=999)) == 59

    def test_never_negative(self):
        """Clock skew must not produce negative elapsed time"""
        assert session_clock.elapsed_since(T, T - timedelta(seconds=30)) == 0

    def test_missing_start(self):
        assert session_clock.elapsed_since(None, T) == 0

    def test_naive_timestamps_are_treated_as_utc(self):
        naive_start = T.replace(tzinfo=None)
        assert session_clock.elapsed_since(naive_start, T + timedelta(minutes=2)) == 120

class TestTotalElapsed:
    """Test elapsed time as of the last recorded event"""

    def test_active_session_uses_now(self):
        session = make_session()
        assert session_clock.total_elapsed(session, T + timedelta(seconds=400)) == 400

    def test_paused_session_stops_at_paused_at(self):
        session = make_session(SessionStatus.PAUSED.value, paused_at=T + timedelta(seconds=300))

        assert session_clock.total_elapsed(session, T + timedelta(seconds=900)) == 300
        assert session_clock.total_elapsed(session, T + timedelta(hours=5)) == 300

    def test_completed_session_is_frozen(self):
        session = make_session(SessionStatus.COMPLETED.value, completed_at=T + timedelta(seconds=1000))

        first = session_clock.total_elapsed(session, T + timedelta(days=1))
        second = session_clock.total_elapsed(session, T + timedelta(days=30))
        assert first == second == 1000

    def test_expired_session_uses_now(self):
        session = make_session(SessionStatus.EXPIRED.value, expires_at=T + timedelta(minutes=1))
        assert session_clock.total_elapsed(session, T + timedelta(seconds=90)) == 90

class TestExpiry:
    """Test deadline checks"""

    def test_untimed_session_never_expires(self):
        session = make_session()
        assert session_clock.is_expired(session, T + timedelta(days=365)) is False

    def test_expiry_is_strict(self):
        """A session is still live at exactly its deadline"""
        deadline = T + timedelta(minutes=30)
        session = make_session(expires_at=deadline)

        assert session_clock.is_expired(session, deadline) is False
        assert session_clock.is_expired(session, deadline + timedelta(microseconds=1)) is True

    def test_is_active_requires_active_status(self):
        session = make_session(SessionStatus.PAUSED.value)
        assert session_clock.is_active(session, T) is False

    def test_is_active_false_past_deadline(self):
        session = make_session(expires_at=T + timedelta(minutes=1))

        assert session_clock.is_active(session, T + timedelta(seconds=30)) is True
        assert session_clock.is_active(session, T + timedelta(minutes=2)) is False

    def test_remaining_until_deadline(self):
        session = make_session(expires_at=T + timedelta(minutes=30))

        assert session_clock.remaining_until_deadline(session, T + timedelta(minutes=10)) == 1200
        assert session_clock.remaining_until_deadline(session, T + timedelta(hours=1)) == 0
        assert session_clock.remaining_until_deadline(make_session(), T) is None

class TestTimeUtils:
    """Test timezone helpers"""

    def test_ensure_aware_localizes_naive_as_utc(self):
        aware = ensure_aware(datetime(2026, 3, 2, 9, 0, 0))
        assert aware.tzinfo is not None
        assert aware == T

    def test_ensure_aware_keeps_none(self):
        assert ensure_aware(None) is None

    def test_convert_to_zone(self):
        local = convert_to_zone(T, "Asia/Kolkata")
        assert local.hour == 14
        assert local.minute == 30

from datetime import datetime
import pytz

def get_utc_time():
    """Get current time in UTC"""
    return datetime.now(pytz.UTC)

def ensure_aware(dt):
    """Treat naive datetimes read back from storage as UTC"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)

def convert_to_zone(dt, zone_name: str):
    """Convert a datetime to the named timezone"""
    return ensure_aware(dt).astimezone(pytz.timezone(zone_name))

def format_time_for_display(dt, zone_name: str = "UTC"):
    """Format datetime for display"""
    return convert_to_zone(dt, zone_name).strftime("%Y-%m-%d %H:%M:%S")


class SystemClock:
    """Wall-clock source of "now" used outside tests"""

    def now(self) -> datetime:
        return get_utc_time()

from datetime import datetime, timedelta, timezone

# Sunday morning; 2024-06-10 is "tomorrow" for every test
FIXED_NOW = datetime(2024, 6, 9, 8, 0, tzinfo=timezone.utc)
TODAY = FIXED_NOW.date()


def fixed_clock():
    return FIXED_NOW


def at(days: int, hour: int = 9, minute: int = 0) -> datetime:
    """Timestamp ``days`` after the fixed today at the given time."""
    day = TODAY + timedelta(days=days)
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)

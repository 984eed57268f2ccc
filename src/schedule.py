"""Day-of-week and wall-clock window checks for scheduled rules."""

from datetime import datetime
from typing import Iterable, Tuple

from constants import DEFAULT_TIME


def parse_hhmm(value) -> Tuple[int, int]:
    """Parse "HH:MM"; missing or unreadable parts default to 0 (midnight)."""
    parts = str(value or DEFAULT_TIME).split(":")
    out = []
    for i in range(2):
        try:
            out.append(int(parts[i]))
        except (IndexError, ValueError):
            out.append(0)
    hour = min(max(out[0], 0), 23)
    minute = min(max(out[1], 0), 59)
    return hour, minute


def weekday(now: datetime) -> int:
    """Day index with 0 = Sunday through 6 = Saturday."""
    return (now.weekday() + 1) % 7


def is_day_active(days: Iterable[int], now: datetime) -> bool:
    return weekday(now) in set(days)


def is_time_in_range(start_time, end_time, now: datetime) -> bool:
    sh, sm = parse_hhmm(start_time)
    eh, em = parse_hhmm(end_time)
    start = now.replace(hour=sh, minute=sm, second=0, microsecond=0)
    end = now.replace(hour=eh, minute=em, second=0, microsecond=0)
    if end < start:
        # overnight window, e.g. 22:00-06:00
        return now >= start or now <= end
    return start <= now <= end


def is_schedule_active(schedule, now: datetime) -> bool:
    return is_day_active(schedule.days, now) and is_time_in_range(schedule.start_time, schedule.end_time, now)

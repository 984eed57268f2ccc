"""Usage event log and aggregation over daily, weekly and monthly windows.

Weekly and monthly windows are calendar aligned: a week starts on
Sunday and a month on its first day, both running up to today's date
key inclusive. Rolling N-day lookbacks are not used anywhere in the
core; `aggregate_range` covers callers that need explicit bounds.
"""

from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from constants import USAGE_KEY, USAGE_RETENTION_MONTHS, USAGE_TICK_KEY
from domains import normalize
from models import UsageEvent

WINDOWS = ("daily", "weekly", "monthly", "all")
GROUP_BY = ("domain", "category", "date")

# summary ranges used by the message router map onto the same windows
RANGE_TO_WINDOW = {"today": "daily", "week": "weekly", "month": "monthly", "all": "all"}


def date_key(when) -> str:
    return f"{when.year:04d}-{when.month:02d}-{when.day:02d}"


def window_bounds(window: str, now: datetime) -> Tuple[Optional[str], Optional[str]]:
    """Inclusive (start, end) date keys of `window`; None means unbounded."""
    today = now.date() if isinstance(now, datetime) else now
    if window == "daily":
        start = today
    elif window == "weekly":
        start = today - timedelta(days=(today.weekday() + 1) % 7)
    elif window == "monthly":
        start = today.replace(day=1)
    elif window == "all":
        return None, None
    else:
        raise ValueError(f"Unknown window: {window}")
    return date_key(start), date_key(today)


def _months_back(day: date, months: int) -> date:
    year, month = divmod(day.year * 12 + (day.month - 1) - months, 12)
    month += 1
    last = (date(year + (month == 12), month % 12 + 1, 1) - timedelta(days=1)).day
    return date(year, month, min(day.day, last))


class UsageAggregator:
    def __init__(self, resolver=None):
        self.resolver = resolver

    def _key(self, event: UsageEvent, group_by: str) -> str:
        if group_by == "domain":
            return event.domain
        if group_by == "date":
            return event.date_key
        if group_by == "category":
            if self.resolver is None:
                raise ValueError("Category grouping needs a category resolver")
            return self.resolver.resolve(event.domain)
        raise ValueError(f"Unknown grouping: {group_by}")

    def aggregate_range(self, events: Iterable[UsageEvent], start_key: Optional[str], end_key: Optional[str],
                        group_by: str = "domain") -> Dict[str, float]:
        totals: Dict[str, float] = {}
        for event in events:
            if start_key is not None and event.date_key < start_key:
                continue
            if end_key is not None and event.date_key > end_key:
                continue
            key = self._key(event, group_by)
            totals[key] = totals.get(key, 0.0) + event.seconds
        return totals

    def aggregate(self, events: Iterable[UsageEvent], window: str, now: datetime,
                  group_by: str = "domain") -> Dict[str, float]:
        start_key, end_key = window_bounds(window, now)
        return self.aggregate_range(events, start_key, end_key, group_by)


class UsageLog:
    """Append-only usage events kept in the store under one key."""

    def __init__(self, store):
        self.store = store

    async def events(self) -> List[UsageEvent]:
        data = await self.store.get([USAGE_KEY])
        rows = data.get(USAGE_KEY) or []
        return [UsageEvent.from_dict(r) for r in rows if isinstance(r, dict)]

    async def append(self, domain: str, seconds: float, when: datetime) -> UsageEvent:
        d = normalize(domain)
        if not d:
            raise ValueError("Usage domain is required")
        if seconds < 0:
            raise ValueError("Usage seconds must not be negative")
        event = UsageEvent(d, float(seconds), date_key(when))
        data = await self.store.get([USAGE_KEY])
        rows = list(data.get(USAGE_KEY) or [])
        rows.append(event.to_dict())
        await self.store.set({USAGE_KEY: rows, USAGE_TICK_KEY: int(when.timestamp() * 1000)})
        return event

    async def prune(self, now: datetime, months: int = USAGE_RETENTION_MONTHS) -> int:
        """Drop events older than `months` calendar months; returns how many went."""
        cutoff = date_key(_months_back(now.date(), months))
        events = await self.events()
        kept = [e for e in events if e.date_key >= cutoff]
        removed = len(events) - len(kept)
        if removed:
            await self.store.set({USAGE_KEY: [e.to_dict() for e in kept]})
        return removed

    async def clear(self) -> None:
        await self.store.set({USAGE_KEY: []})

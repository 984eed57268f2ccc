"""Key-value stores and the typed configuration repository on top of them."""

import asyncio
import os
import tempfile
import time
from typing import Callable, Dict, Iterable, List, Optional

from constants import (
    CATEGORIES_KEY,
    DOMAIN_CATEGORIES_KEY,
    LIMIT_HISTORY_KEY,
    LIMITS_KEY,
    PATTERNS_KEY,
    REBUILD_TRIGGER_KEY,
    RULES_KEY,
    SNOOZE_KEY,
    USAGE_TICK_KEY,
)
from domains import normalize
from errors import StoreUnavailable
from interfaces import IStore
from json_utils import json_dumps, json_loads
from logger import NullLogger
from models import CategoryRecord, LimitChangeRecord, LimitRecord, TimeRule, URLPattern


def _now_ms() -> int:
    return int(time.time() * 1000)


class _SubscribersMixin:
    def _init_subscribers(self):
        self._subscribers: List[Callable[[Dict[str, object]], None]] = []

    def subscribe(self, callback) -> None:
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _notify(self, changes: Dict[str, object]) -> None:
        for callback in list(self._subscribers):
            callback(dict(changes))


class MemoryStore(_SubscribersMixin, IStore):
    def __init__(self, initial: Optional[Dict[str, object]] = None):
        self._data: Dict[str, object] = dict(initial or {})
        self._init_subscribers()

    async def get(self, keys: Iterable[str]) -> Dict[str, object]:
        return {k: self._data[k] for k in keys if k in self._data}

    async def set(self, items: Dict[str, object]) -> None:
        self._data.update(items)
        self._notify(items)


class JsonFileStore(_SubscribersMixin, IStore):
    """Whole-file JSON store; every write replaces the file atomically."""

    def __init__(self, path: str):
        self.path = path
        self._lock = asyncio.Lock()
        self._init_subscribers()

    def _read(self) -> Dict[str, object]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "rb") as f:
                raw = f.read()
        except OSError as e:
            raise StoreUnavailable(f"Cannot read {self.path}: {e}") from e
        if not raw.strip():
            return {}
        try:
            data = json_loads(raw)
        except ValueError as e:
            raise StoreUnavailable(f"Corrupt state file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreUnavailable(f"State file {self.path} does not hold an object")
        return data

    def _write(self, data: Dict[str, object]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(prefix=".state-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(json_dumps(data, indent=True))
            os.replace(tmp_path, self.path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StoreUnavailable(f"Cannot write {self.path}: {e}") from e

    async def get(self, keys: Iterable[str]) -> Dict[str, object]:
        async with self._lock:
            data = self._read()
        return {k: data[k] for k in keys if k in data}

    async def set(self, items: Dict[str, object]) -> None:
        async with self._lock:
            data = self._read()
            data.update(items)
            self._write(data)
        self._notify(items)


class ConfigRepository:
    """Typed reads and writes of the persisted configuration.

    Reads fail open: when the store is unavailable they log the error and
    return empty values, so nothing gets blocked by a broken store.
    """

    def __init__(self, store: IStore, logger=None):
        self.store = store
        self.logger = logger or NullLogger()

    async def _read(self, key: str, default):
        try:
            data = await self.store.get([key])
        except StoreUnavailable as e:
            self.logger.log_error(f"[store] {key} unavailable, treating as empty: {e}")
            return default
        value = data.get(key)
        if value is None or not isinstance(value, type(default)):
            return default
        return value

    # reads

    async def get_limits(self) -> List[LimitRecord]:
        rows = await self._read(LIMITS_KEY, [])
        return [LimitRecord.from_dict(r) for r in rows if isinstance(r, dict)]

    async def get_rules(self) -> List[TimeRule]:
        rows = await self._read(RULES_KEY, [])
        return [TimeRule.from_dict(r) for r in rows if isinstance(r, dict)]

    async def get_patterns(self) -> List[URLPattern]:
        rows = await self._read(PATTERNS_KEY, [])
        return [URLPattern.from_dict(r) for r in rows if isinstance(r, dict)]

    async def get_domain_categories(self) -> Dict[str, str]:
        mapping = await self._read(DOMAIN_CATEGORIES_KEY, {})
        return {str(k): str(v) for k, v in mapping.items() if v}

    async def get_categories(self) -> List[CategoryRecord]:
        rows = await self._read(CATEGORIES_KEY, [])
        return [CategoryRecord.from_dict(r) for r in rows if isinstance(r, dict)]

    async def get_snooze_until(self) -> int:
        try:
            data = await self.store.get([SNOOZE_KEY])
        except StoreUnavailable as e:
            self.logger.log_error(f"[store] {SNOOZE_KEY} unavailable: {e}")
            return 0
        try:
            return int(data.get(SNOOZE_KEY) or 0)
        except (TypeError, ValueError):
            return 0

    async def get_limit_history(self) -> List[LimitChangeRecord]:
        rows = await self._read(LIMIT_HISTORY_KEY, [])
        return [LimitChangeRecord.from_dict(r) for r in rows if isinstance(r, dict)]

    # writes

    async def _trigger_rebuild(self) -> None:
        now = _now_ms()
        await self.store.set({REBUILD_TRIGGER_KEY: now, USAGE_TICK_KEY: now})

    async def save_rule(self, rule: TimeRule) -> TimeRule:
        if not rule.id:
            raise ValueError("Rule id is required")
        for day in rule.schedule.days:
            if not 0 <= day <= 6:
                raise ValueError(f"Invalid day {day}: days run from 0 (Sunday) to 6 (Saturday)")
        rules = await self.get_rules()
        now = _now_ms()
        rule.updated_at = now
        for i, existing in enumerate(rules):
            if existing.id == rule.id:
                rule.created_at = existing.created_at or now
                rules[i] = rule
                break
        else:
            rule.created_at = now
            rules.append(rule)
        await self.store.set({RULES_KEY: [r.to_dict() for r in rules]})
        await self._trigger_rebuild()
        return rule

    async def delete_rule(self, rule_id: str) -> None:
        rules = [r for r in await self.get_rules() if r.id != rule_id]
        await self.store.set({RULES_KEY: [r.to_dict() for r in rules]})
        await self._trigger_rebuild()

    async def save_pattern(self, pattern: URLPattern) -> URLPattern:
        if not pattern.id:
            raise ValueError("Pattern id is required")
        if not pattern.pattern:
            raise ValueError("Pattern text is required")
        patterns = await self.get_patterns()
        for i, existing in enumerate(patterns):
            if existing.id == pattern.id:
                pattern.created_at = pattern.created_at or existing.created_at
                patterns[i] = pattern
                break
        else:
            pattern.created_at = _now_ms()
            patterns.append(pattern)
        await self.store.set({PATTERNS_KEY: [p.to_dict() for p in patterns]})
        await self._trigger_rebuild()
        return pattern

    async def delete_pattern(self, pattern_id: str) -> None:
        patterns = [p for p in await self.get_patterns() if p.id != pattern_id]
        await self.store.set({PATTERNS_KEY: [p.to_dict() for p in patterns]})
        await self._trigger_rebuild()

    async def _append_history(self, entry: LimitChangeRecord) -> None:
        history = await self.get_limit_history()
        history.append(entry)
        await self.store.set({LIMIT_HISTORY_KEY: [h.to_dict() for h in history]})

    def _history_entry(self, limit: LimitRecord, action: str, old_minutes=None, new_minutes=None) -> LimitChangeRecord:
        return LimitChangeRecord(
            id=limit.id,
            timestamp=_now_ms(),
            action=action,
            target_type=limit.target_type,
            target_id=limit.target_id,
            display_name=limit.display_name,
            timeframe=limit.timeframe,
            old_minutes=old_minutes,
            new_minutes=new_minutes,
        )

    async def upsert_limit(self, limit: LimitRecord) -> None:
        if not limit.id:
            raise ValueError("Limit id is required")
        if limit.limit_minutes <= 0:
            raise ValueError("Limit minutes must be greater than zero")
        if not limit.target_id:
            raise ValueError("Limit target is required")
        if limit.target_type == "site":
            limit.target_id = normalize(limit.target_id)
        limits = await self.get_limits()
        existing = None
        for i, current in enumerate(limits):
            if current.id == limit.id:
                existing = current
                limits[i] = limit
                break
        else:
            limits.append(limit)
        await self.store.set({LIMITS_KEY: [l.to_dict() for l in limits]})
        await self._append_history(self._history_entry(
            limit,
            "update" if existing else "create",
            old_minutes=existing.limit_minutes if existing else None,
            new_minutes=limit.limit_minutes,
        ))

    async def delete_limit(self, limit_id: str) -> None:
        limits = await self.get_limits()
        removed = next((l for l in limits if l.id == limit_id), None)
        await self.store.set({LIMITS_KEY: [l.to_dict() for l in limits if l.id != limit_id]})
        if removed:
            await self._append_history(self._history_entry(removed, "delete", old_minutes=removed.limit_minutes))

    async def update_limit_minutes(self, limit_id: str, minutes: float) -> None:
        if minutes <= 0:
            raise ValueError("Limit minutes must be greater than zero")
        limits = await self.get_limits()
        current = next((l for l in limits if l.id == limit_id), None)
        if current is None:
            return
        old = current.limit_minutes
        current.limit_minutes = float(minutes)
        await self.store.set({LIMITS_KEY: [l.to_dict() for l in limits]})
        await self._append_history(self._history_entry(current, "update", old_minutes=old, new_minutes=current.limit_minutes))

    async def set_domain_category(self, domain: str, category: Optional[str]) -> None:
        key = normalize(domain)
        if not key:
            raise ValueError("Domain is required")
        mapping = await self.get_domain_categories()
        if category:
            mapping[key] = category
        else:
            mapping.pop(key, None)
        await self.store.set({DOMAIN_CATEGORIES_KEY: mapping})

    async def upsert_category(self, record: CategoryRecord) -> None:
        if not record.name:
            raise ValueError("Category name is required")
        categories = await self.get_categories()
        for i, current in enumerate(categories):
            if current.name == record.name:
                categories[i] = record
                break
        else:
            categories.append(record)
        await self.store.set({CATEGORIES_KEY: [c.to_dict() for c in categories]})

    async def set_snooze(self, minutes: float, now_ms: Optional[int] = None) -> int:
        if minutes <= 0:
            raise ValueError("Snooze minutes must be greater than zero")
        now_ms = _now_ms() if now_ms is None else now_ms
        until = now_ms + int(minutes * 60_000)
        await self.store.set({SNOOZE_KEY: until, USAGE_TICK_KEY: now_ms})
        return until

    async def clear_snooze(self) -> None:
        await self.store.set({SNOOZE_KEY: 0})

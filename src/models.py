"""Typed entities read from and written to the store.

Every default an entity field can take lives here, so readers never
re-derive them from raw storage values.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional

from constants import DEFAULT_TIME

TIMEFRAMES = ("daily", "weekly", "monthly")
LIMIT_TARGET_TYPES = ("site", "category")
RULE_TARGET_TYPES = ("domain", "category", "pattern")
PATTERN_TYPES = ("exact", "contains", "glob", "regex")
ACTIONS = ("block", "limit")


def _str(value, default: str = "") -> str:
    return default if value is None else str(value)


def _opt_number(value) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _choice(value, allowed, default: str) -> str:
    v = _str(value, default).strip().lower()
    return v if v in allowed else default


def _bool(value, default: bool = True) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() not in ("", "false", "0", "no", "off")
    return bool(value)


def _list(value) -> list:
    return value if isinstance(value, (list, tuple)) else []


@dataclass(frozen=True)
class UsageEvent:
    domain: str
    seconds: float
    date_key: str

    @staticmethod
    def from_dict(data: dict) -> "UsageEvent":
        return UsageEvent(
            domain=_str(data.get("domain")),
            seconds=_opt_number(data.get("seconds")) or 0.0,
            date_key=_str(data.get("dateKey")),
        )

    def to_dict(self) -> dict:
        return {"domain": self.domain, "seconds": self.seconds, "dateKey": self.date_key}


@dataclass
class LimitRecord:
    id: str
    target_type: str
    target_id: str
    timeframe: str
    limit_minutes: float
    display_name: str = ""

    @staticmethod
    def from_dict(data: dict) -> "LimitRecord":
        if "targetType" not in data and "domain" in data:
            # legacy {id, domain, timeframe, limitMinutes}
            data = {
                "id": data.get("id"),
                "targetType": "site",
                "targetId": data.get("domain"),
                "timeframe": data.get("timeframe"),
                "limitMinutes": data.get("limitMinutes"),
                "displayName": data.get("domain"),
            }
        target_id = _str(data.get("targetId"))
        return LimitRecord(
            id=_str(data.get("id")),
            target_type=_choice(data.get("targetType"), LIMIT_TARGET_TYPES, "site"),
            target_id=target_id,
            timeframe=_choice(data.get("timeframe"), TIMEFRAMES, "daily"),
            limit_minutes=_opt_number(data.get("limitMinutes")) or 0.0,
            display_name=_str(data.get("displayName"), target_id),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "targetType": self.target_type,
            "targetId": self.target_id,
            "timeframe": self.timeframe,
            "limitMinutes": self.limit_minutes,
            "displayName": self.display_name,
        }

    @property
    def limit_seconds(self) -> float:
        return self.limit_minutes * 60


@dataclass
class LimitChangeRecord:
    id: str
    timestamp: int
    action: str
    target_type: str
    target_id: str
    display_name: str
    timeframe: str
    old_minutes: Optional[float] = None
    new_minutes: Optional[float] = None

    @staticmethod
    def from_dict(data: dict) -> "LimitChangeRecord":
        return LimitChangeRecord(
            id=_str(data.get("id")),
            timestamp=int(data.get("timestamp") or 0),
            action=_str(data.get("action")),
            target_type=_str(data.get("targetType")),
            target_id=_str(data.get("targetId")),
            display_name=_str(data.get("displayName")),
            timeframe=_str(data.get("timeframe")),
            old_minutes=_opt_number(data.get("oldMinutes")),
            new_minutes=_opt_number(data.get("newMinutes")),
        )

    def to_dict(self) -> dict:
        out = {
            "id": self.id,
            "timestamp": self.timestamp,
            "action": self.action,
            "targetType": self.target_type,
            "targetId": self.target_id,
            "displayName": self.display_name,
            "timeframe": self.timeframe,
        }
        if self.old_minutes is not None:
            out["oldMinutes"] = self.old_minutes
        if self.new_minutes is not None:
            out["newMinutes"] = self.new_minutes
        return out


@dataclass
class Schedule:
    days: List[int] = field(default_factory=list)
    start_time: str = DEFAULT_TIME
    end_time: str = DEFAULT_TIME

    @staticmethod
    def from_dict(data: Optional[dict]) -> "Schedule":
        if not isinstance(data, dict):
            data = {}
        days = []
        for d in _list(data.get("days")):
            try:
                days.append(int(d))
            except (TypeError, ValueError):
                continue
        return Schedule(
            days=days,
            start_time=_str(data.get("startTime")) or DEFAULT_TIME,
            end_time=_str(data.get("endTime")) or DEFAULT_TIME,
        )

    def to_dict(self) -> dict:
        return {"days": list(self.days), "startTime": self.start_time, "endTime": self.end_time}


@dataclass
class RuleTarget:
    type: str
    value: str
    action: str = "block"
    limit_minutes: Optional[float] = None

    @staticmethod
    def from_dict(data: dict) -> "RuleTarget":
        return RuleTarget(
            type=_choice(data.get("type"), RULE_TARGET_TYPES, "domain"),
            value=_str(data.get("value")),
            action=_choice(data.get("action"), ACTIONS, "block"),
            limit_minutes=_opt_number(data.get("limitMinutes")),
        )

    def to_dict(self) -> dict:
        out = {"type": self.type, "value": self.value, "action": self.action}
        if self.limit_minutes is not None:
            out["limitMinutes"] = self.limit_minutes
        return out


@dataclass
class TimeRule:
    id: str
    name: str = ""
    enabled: bool = True
    schedule: Schedule = field(default_factory=Schedule)
    targets: List[RuleTarget] = field(default_factory=list)
    priority: int = 0
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    @staticmethod
    def from_dict(data: dict) -> "TimeRule":
        rule_id = _str(data.get("id"))
        try:
            priority = int(data.get("priority") or 0)
        except (TypeError, ValueError):
            priority = 0
        return TimeRule(
            id=rule_id,
            name=_str(data.get("name"), rule_id),
            enabled=_bool(data.get("enabled")),
            schedule=Schedule.from_dict(data.get("schedule")),
            targets=[RuleTarget.from_dict(t) for t in _list(data.get("targets")) if isinstance(t, dict)],
            priority=priority,
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "enabled": self.enabled,
            "schedule": self.schedule.to_dict(),
            "targets": [t.to_dict() for t in self.targets],
            "priority": self.priority,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class URLPattern:
    id: str
    pattern: str
    type: str = "contains"
    enabled: bool = True
    action: str = "block"
    limit_minutes: Optional[float] = None
    name: str = ""
    description: str = ""
    created_at: Optional[int] = None

    @staticmethod
    def from_dict(data: dict) -> "URLPattern":
        pattern_id = _str(data.get("id"))
        return URLPattern(
            id=pattern_id,
            pattern=_str(data.get("pattern")),
            type=_choice(data.get("type"), PATTERN_TYPES, "contains"),
            enabled=_bool(data.get("enabled")),
            action=_choice(data.get("action"), ACTIONS, "block"),
            limit_minutes=_opt_number(data.get("limitMinutes")),
            name=_str(data.get("name"), pattern_id),
            description=_str(data.get("description")),
            created_at=data.get("createdAt"),
        )

    def to_dict(self) -> dict:
        out = {
            "id": self.id,
            "name": self.name,
            "pattern": self.pattern,
            "type": self.type,
            "enabled": self.enabled,
            "action": self.action,
            "description": self.description,
            "createdAt": self.created_at,
        }
        if self.limit_minutes is not None:
            out["limitMinutes"] = self.limit_minutes
        return out


@dataclass
class CategoryRecord:
    name: str
    color: str = ""

    @staticmethod
    def from_dict(data: dict) -> "CategoryRecord":
        return CategoryRecord(name=_str(data.get("name")), color=_str(data.get("color")))

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Verdict:
    blocked: bool = False
    reason: Optional[str] = None
    rule_name: Optional[str] = None
    allowed_minutes: Optional[float] = None

    def to_dict(self) -> dict:
        out = {"blocked": self.blocked}
        if self.reason is not None:
            out["reason"] = self.reason
        if self.rule_name is not None:
            out["ruleName"] = self.rule_name
        if self.allowed_minutes is not None:
            out["allowedMinutes"] = self.allowed_minutes
        return out


@dataclass
class QuotaStatus:
    limit: LimitRecord
    used_seconds: float
    blocked: bool

    @property
    def remaining_seconds(self) -> float:
        return max(0.0, self.limit.limit_seconds - self.used_seconds)

    def to_dict(self) -> dict:
        out = self.limit.to_dict()
        out["usedSeconds"] = self.used_seconds
        out["isCurrentlyBlocked"] = self.blocked
        return out


@dataclass
class BlockSet:
    domains: set = field(default_factory=set)
    categories: set = field(default_factory=set)
    # base domains blocked below the apex only, from "*." targets
    subdomains: set = field(default_factory=set)

    def to_dict(self) -> Dict[str, List[str]]:
        out = {"domains": sorted(self.domains), "categories": sorted(self.categories)}
        if self.subdomains:
            out["subdomains"] = sorted(self.subdomains - self.domains)
        return out

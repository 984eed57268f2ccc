"""Decision statistics tracking."""

import time
from typing import Dict, Optional

from interfaces import IStatistics


class DecisionStats(IStatistics):
    def __init__(self):
        self.evaluations = 0
        self.blocked = 0
        self.allowed = 0
        self.snoozed = 0
        self.errors = 0
        self.rebuilds = 0
        self.last_rebuild: Optional[float] = None
        self.started = time.monotonic()

    def increment_evaluations(self) -> None:
        self.evaluations += 1

    def increment_blocked(self) -> None:
        self.blocked += 1

    def increment_allowed(self) -> None:
        self.allowed += 1

    def increment_snoozed(self) -> None:
        self.snoozed += 1

    def increment_errors(self) -> None:
        self.errors += 1

    def record_rebuild(self) -> None:
        self.rebuilds += 1
        self.last_rebuild = time.time()

    def snapshot(self) -> Dict[str, object]:
        total = self.evaluations
        block_rate = (self.blocked / total) * 100 if total > 0 else 0.0
        return {
            "evaluations": total,
            "blocked": self.blocked,
            "allowed": self.allowed,
            "snoozed": self.snoozed,
            "errors": self.errors,
            "rebuilds": self.rebuilds,
            "last_rebuild": self.last_rebuild,
            "block_rate": block_rate,
            "uptime_seconds": time.monotonic() - self.started,
        }

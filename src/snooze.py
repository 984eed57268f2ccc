"""Time-boxed global override of every blocking decision."""

from datetime import datetime

from constants import SNOOZE_BUFFER_MS


def to_ms(now: datetime) -> int:
    return int(now.timestamp() * 1000)


class SnoozeGate:
    def __init__(self, repository):
        self.repository = repository

    @staticmethod
    def active_at(until_ms: int, now: datetime, buffer_ms: int = 0) -> bool:
        return to_ms(now) < until_ms + buffer_ms

    async def is_active(self, now: datetime, buffer_ms: int = 0) -> bool:
        """Expiry is passive: the stored timestamp is re-read on every call."""
        until = await self.repository.get_snooze_until()
        return self.active_at(until, now, buffer_ms)

    async def is_active_with_buffer(self, now: datetime) -> bool:
        return await self.is_active(now, SNOOZE_BUFFER_MS)

    async def remaining_ms(self, now: datetime) -> int:
        until = await self.repository.get_snooze_until()
        return max(0, until - to_ms(now))

    async def clear_if_expired(self, now: datetime) -> bool:
        until = await self.repository.get_snooze_until()
        if until and not self.active_at(until, now):
            await self.repository.clear_snooze()
            return True
        return False

"""Block service orchestration: debounced rebuilds, ticks and navigation checks."""

import asyncio
from datetime import datetime
from typing import Callable, Optional
from urllib.parse import quote

from constants import LAST_BLOCKED_KEY, REBUILD_KEYS, SNOOZE_KEY
from enforcement import build_directives
from errors import FocusGateError
from models import BlockSet
from usage import date_key


class BlockService:
    def __init__(self, config, engine, enforcer, statistics, logger, clock: Optional[Callable[[], datetime]] = None):
        self.config = config
        self.engine = engine
        self.repository = engine.repository
        self.enforcer = enforcer
        self.statistics = statistics
        self.logger = logger
        self.clock = clock or datetime.now
        self.last_block_set: Optional[BlockSet] = None
        self._generation = 0
        self._pending: Optional[asyncio.Task] = None
        self._tick_task: Optional[asyncio.Task] = None
        self._rebuild_lock = asyncio.Lock()
        self._stopped = asyncio.Event()
        self._last_prune: Optional[str] = None

    def on_store_change(self, changes) -> None:
        if not REBUILD_KEYS.intersection(changes):
            return
        # a freshly set snooze gets the longer delay so in-flight work settles first
        delay = self.config.snooze_debounce_ms if SNOOZE_KEY in changes else self.config.debounce_ms
        self.schedule_rebuild(delay)

    def schedule_rebuild(self, delay_ms: float) -> None:
        self._generation += 1
        if self._pending and not self._pending.done():
            self._pending.cancel()
        self._pending = asyncio.create_task(self._delayed_rebuild(delay_ms, self._generation))

    async def _delayed_rebuild(self, delay_ms: float, generation: int) -> None:
        await asyncio.sleep(delay_ms / 1000)
        await self.rebuild(generation)

    async def rebuild(self, generation: Optional[int] = None) -> Optional[BlockSet]:
        """Recompute the block set and install it as one full replacement.

        A rebuild started for an older `generation` is dropped when a newer
        change has been scheduled meanwhile.
        """
        async with self._rebuild_lock:
            try:
                block_set = await self.engine.materialized_block_set(self.clock())
                if generation is not None and generation != self._generation:
                    self.logger.log_access(f"[service] dropped stale rebuild {generation} (current {self._generation})")
                    return None
                if (block_set.domains or block_set.subdomains) and await self.engine.snooze.is_active(self.clock()):
                    block_set = BlockSet()
                directives = build_directives(block_set, self.config.redirect_target)
                await self.enforcer.replace_all(directives)
            except (FocusGateError, OSError) as e:
                self.logger.log_error(f"[service] rebuild failed: {e}")
                return None
            self.last_block_set = block_set
            self.statistics.record_rebuild()
            self.logger.log_access(
                f"[service] installed {len(directives)} directives for "
                f"{len(block_set.domains)} domains, {len(block_set.categories)} categories"
            )
            return block_set

    async def tick(self) -> None:
        now = self.clock()
        try:
            if await self.engine.snooze.clear_if_expired(now):
                self.logger.log_access("[service] snooze expired")
            today = date_key(now)
            if self._last_prune != today:
                removed = await self.engine.usage_log.prune(now)
                self._last_prune = today
                if removed:
                    self.logger.log_access(f"[service] pruned {removed} old usage events")
        except FocusGateError as e:
            self.logger.log_error(f"[service] tick failed: {e}")
        # usage accrues without config changes, so quotas are re-checked every tick
        await self.rebuild()

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.tick_seconds)
            await self.tick()

    async def on_navigation(self, url: str, frame_id: int = 0) -> Optional[str]:
        """Redirect target for a primary-frame navigation to a blocked URL, else None."""
        if frame_id != 0:
            return None
        now = self.clock()
        try:
            if await self.engine.snooze.is_active(now, self.config.snooze_buffer_ms):
                return None
            decision = await self.engine.decide(url, now)
            if not decision.blocked:
                return None
            await self.repository.store.set({LAST_BLOCKED_KEY: decision.domain})
        except FocusGateError as e:
            self.logger.log_error(f"[service] navigation check failed for {url}: {e}")
            return None
        return f"{self.config.redirect_target}?from={quote(url, safe='')}"

    async def start(self) -> None:
        self.repository.store.subscribe(self.on_store_change)
        await self.rebuild()
        self._tick_task = asyncio.create_task(self._tick_loop())

    async def run(self) -> None:
        await self.start()
        self.logger.info(f"[INFO]: focusgate service running, state file '{self.config.state_file}'")
        await self._stopped.wait()

    async def shutdown(self) -> None:
        self.repository.store.unsubscribe(self.on_store_change)
        for task in (self._pending, self._tick_task):
            if task and not task.done():
                task.cancel()
        self._stopped.set()

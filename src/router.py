"""Request/response port in front of the decision engine."""

from datetime import date, datetime
from typing import Callable, Dict, Optional

from categories import CategoryResolver
from errors import FocusGateError
from rules import preset_configurations
from snooze import to_ms
from usage import RANGE_TO_WINDOW, UsageAggregator, date_key


def _summary(totals: Dict[str, float]) -> list:
    return [{"key": k, "seconds": v} for k, v in totals.items()]


def _parse_day(value) -> str:
    if isinstance(value, (date, datetime)):
        return date_key(value)
    return date_key(date.fromisoformat(str(value)[:10]))


class MessageRouter:
    def __init__(self, engine, statistics=None, logger=None, clock: Optional[Callable[[], datetime]] = None):
        self.engine = engine
        self.repository = engine.repository
        self.statistics = statistics
        self.logger = logger or engine.logger
        self.clock = clock or datetime.now
        self.handlers = {
            "is-url-blocked": self._is_url_blocked,
            "evaluate-url": self._evaluate_url,
            "get-limits": self._get_limits,
            "debug-blocked-domains": self._debug_blocked_domains,
            "get-block-set": self._get_block_set,
            "get-usage-summary": self._get_usage_summary,
            "get-usage-summary-for-range": self._get_usage_summary_for_range,
            "set-snooze": self._set_snooze,
            "clear-snooze": self._clear_snooze,
            "get-stats": self._get_stats,
            "get-presets": self._get_presets,
        }

    async def handle(self, message) -> dict:
        if not isinstance(message, dict):
            return {"ok": False, "error": "Message must be an object"}
        kind = message.get("type")
        handler = self.handlers.get(kind)
        if handler is None:
            return {"ok": False, "error": f"Unknown message type: {kind}"}
        payload = message.get("payload") or {}
        if not isinstance(payload, dict):
            return {"ok": False, "error": "Payload must be an object"}
        try:
            data = await handler(payload)
        except (FocusGateError, ValueError, KeyError, TypeError) as e:
            self.logger.log_error(f"[router] {kind} failed: {e}")
            return {"ok": False, "error": str(e)}
        return {"ok": True, "data": data}

    async def _is_url_blocked(self, payload):
        return await self.engine.is_url_blocked(payload["url"], self.clock())

    async def _evaluate_url(self, payload):
        return (await self.engine.decide(payload["url"], self.clock())).to_dict()

    async def _get_limits(self, payload):
        return [s.to_dict() for s in await self.engine.limit_statuses(self.clock())]

    async def _debug_blocked_domains(self, payload):
        statuses = await self.engine.limit_statuses(self.clock())
        resolver = CategoryResolver(await self.repository.get_domain_categories())
        domains = set()
        for status in statuses:
            if not status.blocked:
                continue
            if status.limit.target_type == "site":
                domains.add(status.limit.target_id)
            else:
                domains.update(resolver.domains_for(status.limit.target_id))
        return sorted(domains)

    async def _get_block_set(self, payload):
        return (await self.engine.materialized_block_set(self.clock())).to_dict()

    async def _aggregator(self) -> UsageAggregator:
        return UsageAggregator(CategoryResolver(await self.repository.get_domain_categories()))

    async def _get_usage_summary(self, payload):
        range_name = payload.get("range", "today")
        if range_name not in RANGE_TO_WINDOW:
            raise ValueError(f"Unknown range: {range_name}")
        aggregator = await self._aggregator()
        events = await self.engine.usage_log.events()
        totals = aggregator.aggregate(events, RANGE_TO_WINDOW[range_name], self.clock(), payload.get("by", "domain"))
        return _summary(totals)

    async def _get_usage_summary_for_range(self, payload):
        start = _parse_day(payload["startDate"])
        end = _parse_day(payload["endDate"])
        aggregator = await self._aggregator()
        events = await self.engine.usage_log.events()
        return _summary(aggregator.aggregate_range(events, start, end, payload.get("by", "domain")))

    async def _set_snooze(self, payload):
        minutes = float(payload["minutes"])
        return {"until": await self.repository.set_snooze(minutes, to_ms(self.clock()))}

    async def _clear_snooze(self, payload):
        await self.repository.clear_snooze()
        return {"until": 0}

    async def _get_stats(self, payload):
        if self.statistics is None:
            return {}
        return self.statistics.snapshot()

    async def _get_presets(self, payload):
        return [
            {
                "name": preset["name"],
                "description": preset["description"],
                "rules": [r.to_dict() for r in preset["rules"]],
            }
            for preset in preset_configurations()
        ]

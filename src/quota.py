"""Usage quotas for sites and categories."""

from datetime import datetime
from typing import List, Optional

from categories import CategoryResolver
from domains import matches_domain, normalize
from errors import QuotaComputationError, StoreUnavailable
from logger import NullLogger
from models import LimitRecord, QuotaStatus
from usage import UsageAggregator


class QuotaEvaluator:
    def __init__(self, repository, usage_log, logger=None):
        self.repository = repository
        self.usage_log = usage_log
        self.logger = logger or NullLogger()

    async def _snapshot(self):
        events = await self.usage_log.events()
        mapping = await self.repository.get_domain_categories()
        return events, CategoryResolver(mapping)

    def used_seconds(self, limit: LimitRecord, events, resolver: CategoryResolver, now: datetime) -> float:
        aggregator = UsageAggregator(resolver)
        if limit.limit_minutes <= 0:
            raise QuotaComputationError(f"Limit minutes must be positive, got {limit.limit_minutes:g}")
        if limit.target_type == "site":
            base = normalize(limit.target_id)
            totals = aggregator.aggregate(events, limit.timeframe, now, group_by="domain")
            return sum(seconds for domain, seconds in totals.items() if matches_domain(normalize(domain), base))
        if limit.target_type == "category":
            totals = aggregator.aggregate(events, limit.timeframe, now, group_by="category")
            return totals.get(limit.target_id, 0.0)
        raise QuotaComputationError(f"Unknown limit target type {limit.target_type!r}")

    def status(self, limit: LimitRecord, events, resolver: CategoryResolver, now: datetime) -> QuotaStatus:
        try:
            used = self.used_seconds(limit, events, resolver, now)
        except (QuotaComputationError, ValueError, TypeError) as e:
            self.logger.log_error(f"[quota] {limit.id} treated as not blocked: {e}")
            return QuotaStatus(limit, 0.0, False)
        return QuotaStatus(limit, used, used >= limit.limit_seconds)

    async def evaluate(self, limit: LimitRecord, now: datetime) -> QuotaStatus:
        try:
            events, resolver = await self._snapshot()
        except StoreUnavailable as e:
            self.logger.log_error(f"[quota] usage unavailable, {limit.id} not blocked: {e}")
            return QuotaStatus(limit, 0.0, False)
        return self.status(limit, events, resolver, now)

    async def evaluate_all(self, now: datetime, limits: Optional[List[LimitRecord]] = None) -> List[QuotaStatus]:
        if limits is None:
            limits = await self.repository.get_limits()
        if not limits:
            return []
        try:
            events, resolver = await self._snapshot()
        except StoreUnavailable as e:
            self.logger.log_error(f"[quota] usage unavailable, no limit blocks: {e}")
            return [QuotaStatus(l, 0.0, False) for l in limits]
        return [self.status(l, events, resolver, now) for l in limits]

    @staticmethod
    def limit_applies(limit: LimitRecord, domain: str, resolver: CategoryResolver) -> bool:
        d = normalize(domain)
        if not d:
            return False
        if limit.target_type == "site":
            return matches_domain(d, normalize(limit.target_id))
        if limit.target_type == "category":
            return resolver.resolve(d) == limit.target_id
        return False

    async def blocking_limit(self, domain: str, now: datetime) -> Optional[QuotaStatus]:
        """First exhausted limit that targets `domain`, if any."""
        limits = await self.repository.get_limits()
        if not limits:
            return None
        try:
            events, resolver = await self._snapshot()
        except StoreUnavailable as e:
            self.logger.log_error(f"[quota] usage unavailable, {domain} not blocked: {e}")
            return None
        for limit in limits:
            if not self.limit_applies(limit, domain, resolver):
                continue
            status = self.status(limit, events, resolver, now)
            if status.blocked:
                return status
        return None

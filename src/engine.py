"""Access decisions composed from snooze, quotas and scheduled rules."""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from categories import CategoryResolver
from domains import domain_from_url, normalize
from errors import StoreUnavailable
from logger import NullLogger
from models import BlockSet, QuotaStatus, Verdict
from patterns import PatternMatcher
from quota import QuotaEvaluator
from rules import RuleResolver
from snooze import SnoozeGate
from usage import UsageLog


@dataclass
class Decision:
    url: str
    domain: str
    blocked: bool
    reason: str
    source: str

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "domain": self.domain,
            "blocked": self.blocked,
            "reason": self.reason,
            "source": self.source,
        }


class AccessDecisionEngine:
    def __init__(self, repository, usage_log: Optional[UsageLog] = None, statistics=None, logger=None,
                 matcher: Optional[PatternMatcher] = None):
        self.repository = repository
        self.logger = logger or NullLogger()
        self.statistics = statistics
        self.usage_log = usage_log or UsageLog(repository.store)
        self.snooze = SnoozeGate(repository)
        self.quota = QuotaEvaluator(repository, self.usage_log, self.logger)
        self.rules = RuleResolver(repository, matcher or PatternMatcher(self.logger), self.logger)

    def _count(self, name: str) -> None:
        if self.statistics is not None:
            getattr(self.statistics, name)()

    async def _rule_verdict(self, url: str, now: datetime) -> Verdict:
        try:
            return await self.rules.should_block_url(url, now)
        except StoreUnavailable as e:
            self.logger.log_error(f"[engine] rules unavailable for {url}: {e}")
            return Verdict(False)

    async def _quota_verdict(self, domain: str, now: datetime) -> Optional[QuotaStatus]:
        try:
            return await self.quota.blocking_limit(domain, now)
        except StoreUnavailable as e:
            self.logger.log_error(f"[engine] limits unavailable for {domain}: {e}")
            return None

    async def decide(self, url: str, now: datetime) -> Decision:
        self._count("increment_evaluations")
        domain = domain_from_url(url) or normalize(url)
        if await self.snooze.is_active(now):
            self._count("increment_snoozed")
            self._count("increment_allowed")
            decision = Decision(url, domain, False, "Blocking snoozed", "snooze")
            self.logger.log_access(f"{url} -> allowed ({decision.reason})")
            return decision

        quota, verdict = await asyncio.gather(self._quota_verdict(domain, now), self._rule_verdict(url, now))
        if verdict.blocked:
            decision = Decision(url, domain, True, verdict.reason or "Blocked by rule", "rule")
        elif quota is not None:
            used_minutes = int(quota.used_seconds // 60)
            reason = (f"{quota.limit.timeframe.capitalize()} limit reached for {quota.limit.display_name}: "
                      f"{used_minutes}/{quota.limit.limit_minutes:g} minutes")
            decision = Decision(url, domain, True, reason, "quota")
        else:
            decision = Decision(url, domain, False, "No rule or limit applies", "none")

        self._count("increment_blocked" if decision.blocked else "increment_allowed")
        self.logger.log_access(f"{url} -> {'blocked' if decision.blocked else 'allowed'} ({decision.reason})")
        return decision

    async def is_url_blocked(self, url: str, now: datetime) -> bool:
        return (await self.decide(url, now)).blocked

    async def limit_statuses(self, now: datetime) -> List[QuotaStatus]:
        """Every limit with its derived blocked flag; all unblocked while snoozed."""
        limits = await self.repository.get_limits()
        if await self.snooze.is_active(now):
            return [QuotaStatus(l, 0.0, False) for l in limits]
        return await self.quota.evaluate_all(now, limits)

    async def materialized_block_set(self, now: datetime) -> BlockSet:
        block_set = BlockSet()
        if await self.snooze.is_active(now):
            return block_set

        resolver = CategoryResolver(await self.repository.get_domain_categories())
        try:
            seen_domains = [e.domain for e in await self.usage_log.events()]
        except StoreUnavailable as e:
            self.logger.log_error(f"[engine] usage unavailable while materializing: {e}")
            seen_domains = []

        def add_category(name: str) -> None:
            block_set.categories.add(name)
            block_set.domains.update(resolver.domains_for(name, seen_domains))

        for status in await self.quota.evaluate_all(now):
            if not status.blocked:
                continue
            if status.limit.target_type == "site":
                d = normalize(status.limit.target_id)
                if d:
                    block_set.domains.add(d)
            elif status.limit.target_type == "category":
                add_category(status.limit.target_id)

        for target in await self.rules.active_block_targets(now):
            if target.type == "domain":
                value = target.value.strip()
                if value.startswith("*."):
                    d = normalize(value[2:])
                    if d:
                        block_set.subdomains.add(d)
                    continue
                d = normalize(value)
                if d:
                    block_set.domains.add(d)
            elif target.type == "category":
                add_category(target.value)
        return block_set

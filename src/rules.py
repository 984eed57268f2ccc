"""Scheduled rules and URL patterns resolved into per-domain verdicts."""

from datetime import datetime
from typing import List, Optional

from categories import CategoryResolver
from domains import domain_from_url, matches_domain, normalize
from logger import NullLogger
from models import RuleTarget, Schedule, TimeRule, URLPattern, Verdict
from patterns import PatternMatcher
from schedule import is_schedule_active


class RuleResolver:
    def __init__(self, repository, matcher: Optional[PatternMatcher] = None, logger=None):
        self.repository = repository
        self.logger = logger or NullLogger()
        self.matcher = matcher or PatternMatcher(self.logger)

    async def _resolver(self) -> CategoryResolver:
        return CategoryResolver(await self.repository.get_domain_categories())

    def _match_domain(self, value: str, domain: str) -> bool:
        value = value.strip().lower()
        if value.startswith("*."):
            return domain.endswith(value[1:])
        return matches_domain(domain, normalize(value))

    def target_matches(self, target: RuleTarget, domain: str, resolver: CategoryResolver) -> bool:
        d = normalize(domain)
        if not d or not target.value:
            return False
        if target.type == "domain":
            return self._match_domain(target.value, d)
        if target.type == "category":
            return resolver.resolve(d) == target.value
        if target.type == "pattern":
            return self.matcher.matches_domain_glob(d, target.value)
        return False

    def first_matching_target(self, rule: TimeRule, domain: str, resolver: CategoryResolver) -> Optional[RuleTarget]:
        for target in rule.targets:
            if self.target_matches(target, domain, resolver):
                return target
        return None

    async def get_active_rules(self, domain: str, now: datetime) -> List[TimeRule]:
        rules = await self.repository.get_rules()
        resolver = await self._resolver()
        active = []
        for rule in rules:
            if not rule.enabled:
                continue
            if not is_schedule_active(rule.schedule, now):
                continue
            if self.first_matching_target(rule, domain, resolver) is not None:
                active.append(rule)
        # stable: equal priorities keep their stored order
        return sorted(active, key=lambda r: r.priority, reverse=True)

    def _pattern_verdict(self, value: str, patterns: List[URLPattern]) -> Optional[Verdict]:
        for pattern in patterns:
            if not pattern.enabled or pattern.action != "block":
                continue
            if self.matcher.matches(value, pattern):
                return Verdict(True, f"Blocked by URL pattern: {pattern.name}", pattern.name)
        return None

    async def should_block_domain(self, domain: str, now: datetime) -> Verdict:
        d = normalize(domain)
        resolver = await self._resolver()
        for rule in await self.get_active_rules(d, now):
            target = self.first_matching_target(rule, d, resolver)
            if target is None:
                continue
            if target.action == "block":
                return Verdict(True, f"Blocked by scheduled rule: {rule.name}", rule.name)
            # a limit target passes through; its quota is enforced by QuotaEvaluator
            return Verdict(False, None, rule.name, target.limit_minutes)

        verdict = self._pattern_verdict(d, await self.repository.get_patterns())
        return verdict or Verdict(False)

    async def should_block_url(self, url: str, now: datetime) -> Verdict:
        domain = domain_from_url(url) or normalize(url)
        scheduled = await self.should_block_domain(domain, now)
        if scheduled.blocked:
            return scheduled
        # patterns may key on path or query, so re-check them against the whole URL
        verdict = self._pattern_verdict(url, await self.repository.get_patterns())
        return verdict or scheduled

    async def active_block_targets(self, now: datetime) -> List[RuleTarget]:
        """`block` targets of every enabled rule whose schedule is active at `now`."""
        out = []
        for rule in await self.repository.get_rules():
            if not rule.enabled or not is_schedule_active(rule.schedule, now):
                continue
            out.extend(t for t in rule.targets if t.action == "block")
        return out


def preset_configurations() -> List[dict]:
    """Ready-made rule bundles offered to the configuration surface."""
    return [
        {
            "name": "Work Hours Focus",
            "description": "Block social media and entertainment during work hours",
            "rules": [TimeRule(
                id="preset-workday-social-block",
                name="Workday Social Block",
                schedule=Schedule([1, 2, 3, 4, 5], "09:00", "17:00"),
                targets=[
                    RuleTarget("category", "Social", "block"),
                    RuleTarget("category", "Entertainment", "block"),
                ],
                priority=10,
            )],
        },
        {
            "name": "Evening Wind Down",
            "description": "Limit stimulating content before bedtime",
            "rules": [TimeRule(
                id="preset-evening-limits",
                name="Evening Limits",
                schedule=Schedule([0, 1, 2, 3, 4, 5, 6], "21:00", "23:59"),
                targets=[
                    RuleTarget("category", "Social", "limit", 30),
                    RuleTarget("category", "News", "limit", 15),
                ],
                priority=8,
            )],
        },
        {
            "name": "Weekend Balance",
            "description": "Moderate limits on weekends for digital wellness",
            "rules": [TimeRule(
                id="preset-weekend-social-limit",
                name="Weekend Social Limit",
                schedule=Schedule([0, 6], "10:00", "20:00"),
                targets=[RuleTarget("category", "Social", "limit", 120)],
                priority=5,
            )],
        },
    ]

import sys
import unittest
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from constants import DOMAIN_CATEGORIES_KEY, PATTERNS_KEY, RULES_KEY
from rules import RuleResolver, preset_configurations
from store import ConfigRepository, MemoryStore

# Wednesday 10:30
NOW = datetime(2026, 10, 21, 10, 30)
ALL_DAYS = [0, 1, 2, 3, 4, 5, 6]


def rule(rule_id, targets, priority=0, days=ALL_DAYS, start="09:00", end="17:00", enabled=True):
    return {
        "id": rule_id,
        "name": rule_id,
        "enabled": enabled,
        "schedule": {"days": days, "startTime": start, "endTime": end},
        "targets": targets,
        "priority": priority,
    }


def target(kind, value, action="block", minutes=None):
    out = {"type": kind, "value": value, "action": action}
    if minutes is not None:
        out["limitMinutes"] = minutes
    return out


def url_pattern(pid, text, kind, action="block", enabled=True):
    return {"id": pid, "name": pid, "pattern": text, "type": kind, "action": action, "enabled": enabled}


def resolver_for(**data):
    store = MemoryStore({
        RULES_KEY: data.get("rules", []),
        PATTERNS_KEY: data.get("patterns", []),
        DOMAIN_CATEGORIES_KEY: data.get("categories", {}),
    })
    return RuleResolver(ConfigRepository(store))


class TestActiveRules(unittest.IsolatedAsyncioTestCase):
    async def test_filters_and_sorts_by_priority(self):
        resolver = resolver_for(rules=[
            rule("low", [target("domain", "example.com")], priority=1),
            rule("high", [target("domain", "example.com")], priority=9),
            rule("disabled", [target("domain", "example.com")], priority=50, enabled=False),
            rule("weekend", [target("domain", "example.com")], priority=40, days=[0, 6]),
            rule("evening", [target("domain", "example.com")], priority=30, start="18:00", end="23:00"),
            rule("other", [target("domain", "other.com")], priority=20),
        ])
        active = await resolver.get_active_rules("www.example.com", NOW)
        self.assertEqual([r.id for r in active], ["high", "low"])

    async def test_targets_are_or_matched(self):
        resolver = resolver_for(rules=[rule("multi", [target("domain", "a.com"), target("domain", "b.com")])])
        self.assertEqual(len(await resolver.get_active_rules("b.com", NOW)), 1)

    async def test_category_and_pattern_targets(self):
        resolver = resolver_for(
            rules=[
                rule("cat", [target("category", "Work")]),
                rule("glob", [target("pattern", "*.news.org")]),
            ],
            categories={"corp.com": "Work"},
        )
        self.assertEqual([r.id for r in await resolver.get_active_rules("jira.corp.com", NOW)], ["cat"])
        self.assertEqual([r.id for r in await resolver.get_active_rules("daily.news.org", NOW)], ["glob"])
        self.assertEqual(await resolver.get_active_rules("news.org", NOW), [])

    async def test_wildcard_domain_target_matches_subdomains_only(self):
        resolver = resolver_for(rules=[rule("sub", [target("domain", "*.example.com")])])
        self.assertEqual(len(await resolver.get_active_rules("a.example.com", NOW)), 1)
        self.assertEqual(await resolver.get_active_rules("example.com", NOW), [])


class TestShouldBlock(unittest.IsolatedAsyncioTestCase):
    async def test_block_rule(self):
        resolver = resolver_for(rules=[rule("Focus", [target("domain", "reddit.com")])])
        verdict = await resolver.should_block_domain("old.reddit.com", NOW)
        self.assertTrue(verdict.blocked)
        self.assertEqual(verdict.rule_name, "Focus")
        self.assertEqual(verdict.reason, "Blocked by scheduled rule: Focus")

    async def test_higher_priority_block_wins_over_lower_limit(self):
        resolver = resolver_for(rules=[
            rule("limit5", [target("domain", "example.com", "limit", 20)], priority=5),
            rule("block10", [target("domain", "example.com")], priority=10),
        ])
        verdict = await resolver.should_block_domain("example.com", NOW)
        self.assertTrue(verdict.blocked)
        self.assertEqual(verdict.rule_name, "block10")

    async def test_higher_priority_limit_shadows_lower_block(self):
        resolver = resolver_for(rules=[
            rule("limit10", [target("domain", "example.com", "limit", 20)], priority=10),
            rule("block5", [target("domain", "example.com")], priority=5),
        ])
        verdict = await resolver.should_block_domain("example.com", NOW)
        self.assertFalse(verdict.blocked)
        self.assertEqual(verdict.allowed_minutes, 20)
        self.assertEqual(verdict.rule_name, "limit10")

    async def test_limit_rule_shadows_patterns(self):
        resolver = resolver_for(
            rules=[rule("limit", [target("domain", "example.com", "limit", 5)])],
            patterns=[url_pattern("p", "example", "contains")],
        )
        self.assertFalse((await resolver.should_block_domain("example.com", NOW)).blocked)

    async def test_domain_patterns_when_no_rule_matches(self):
        resolver = resolver_for(patterns=[
            url_pattern("limit-only", "example", "contains", action="limit"),
            url_pattern("off", "example", "contains", enabled=False),
            url_pattern("Gambling", r"casino|bet", "regex"),
        ])
        self.assertFalse((await resolver.should_block_domain("example.com", NOW)).blocked)
        verdict = await resolver.should_block_domain("megacasino.net", NOW)
        self.assertTrue(verdict.blocked)
        self.assertEqual(verdict.reason, "Blocked by URL pattern: Gambling")

    async def test_url_patterns_see_path_and_query(self):
        resolver = resolver_for(patterns=[url_pattern("Shorts", "/shorts/", "contains")])
        self.assertFalse((await resolver.should_block_domain("youtube.com", NOW)).blocked)
        self.assertTrue((await resolver.should_block_url("https://www.youtube.com/shorts/xyz", NOW)).blocked)
        self.assertFalse((await resolver.should_block_url("https://www.youtube.com/watch?v=1", NOW)).blocked)

    async def test_url_uses_domain_rules(self):
        resolver = resolver_for(rules=[rule("Focus", [target("domain", "reddit.com")])])
        self.assertTrue((await resolver.should_block_url("https://www.reddit.com/r/all", NOW)).blocked)

    async def test_invalid_regex_pattern_does_not_break_evaluation(self):
        resolver = resolver_for(patterns=[
            url_pattern("broken", "([", "regex"),
            url_pattern("ok", "example", "contains"),
        ])
        self.assertTrue((await resolver.should_block_url("https://example.com/", NOW)).blocked)

    async def test_outside_window_is_not_blocked(self):
        resolver = resolver_for(rules=[rule("Focus", [target("domain", "reddit.com")])])
        evening = NOW.replace(hour=20)
        self.assertFalse((await resolver.should_block_domain("reddit.com", evening)).blocked)

    async def test_overnight_rule(self):
        resolver = resolver_for(rules=[rule("Night", [target("domain", "reddit.com")], start="22:00", end="06:00")])
        self.assertTrue((await resolver.should_block_domain("reddit.com", NOW.replace(hour=23))).blocked)
        self.assertFalse((await resolver.should_block_domain("reddit.com", NOW)).blocked)

    async def test_active_block_targets(self):
        resolver = resolver_for(rules=[
            rule("r1", [target("domain", "a.com"), target("category", "Social", "limit", 10)]),
            rule("r2", [target("category", "Social")], start="18:00", end="19:00"),
        ])
        targets = await resolver.active_block_targets(NOW)
        self.assertEqual([(t.type, t.value) for t in targets], [("domain", "a.com")])


class TestPresets(unittest.TestCase):
    def test_presets(self):
        presets = preset_configurations()
        self.assertEqual([p["name"] for p in presets], ["Work Hours Focus", "Evening Wind Down", "Weekend Balance"])
        workday = presets[0]["rules"][0]
        self.assertEqual(workday.priority, 10)
        self.assertEqual(workday.schedule.days, [1, 2, 3, 4, 5])


if __name__ == "__main__":
    unittest.main()

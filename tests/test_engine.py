import sys
import unittest
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from constants import DOMAIN_CATEGORIES_KEY, LIMITS_KEY, PATTERNS_KEY, RULES_KEY, SNOOZE_KEY, USAGE_KEY
from engine import AccessDecisionEngine
from errors import StoreUnavailable
from snooze import to_ms
from stats import DecisionStats
from store import ConfigRepository, MemoryStore

NOW = datetime(2026, 10, 21, 10, 30)
ALL_DAYS = [0, 1, 2, 3, 4, 5, 6]


def block_rule(rule_id, kind, value, start="09:00", end="17:00"):
    return {
        "id": rule_id,
        "name": rule_id,
        "enabled": True,
        "schedule": {"days": ALL_DAYS, "startTime": start, "endTime": end},
        "targets": [{"type": kind, "value": value, "action": "block"}],
        "priority": 1,
    }


def limit(limit_id, target_type, target, minutes):
    return {"id": limit_id, "targetType": target_type, "targetId": target, "timeframe": "daily",
            "limitMinutes": minutes, "displayName": target}


def usage(domain, seconds):
    return {"domain": domain, "seconds": seconds, "dateKey": "2026-10-21"}


def make_engine(data, stats=None):
    store = MemoryStore(data)
    return AccessDecisionEngine(ConfigRepository(store), statistics=stats), store


class FlakyStore(MemoryStore):
    """Serves rules but fails on everything else."""

    async def get(self, keys):
        keys = list(keys)
        if keys != [RULES_KEY]:
            raise StoreUnavailable("usage db offline")
        return await super().get(keys)


class TestDecisions(unittest.IsolatedAsyncioTestCase):
    async def test_rule_block(self):
        engine, _ = make_engine({RULES_KEY: [block_rule("Focus", "domain", "reddit.com")]})
        decision = await engine.decide("https://www.reddit.com/r/all", NOW)
        self.assertTrue(decision.blocked)
        self.assertEqual(decision.source, "rule")
        self.assertEqual(decision.domain, "reddit.com")
        self.assertIn("Focus", decision.reason)

    async def test_quota_block(self):
        engine, _ = make_engine({
            LIMITS_KEY: [limit("l1", "site", "youtube.com", 30)],
            USAGE_KEY: [usage("youtube.com", 1800)],
        })
        decision = await engine.decide("https://m.youtube.com/watch?v=1", NOW)
        self.assertTrue(decision.blocked)
        self.assertEqual(decision.source, "quota")
        self.assertIn("30/30 minutes", decision.reason)

    async def test_quota_under_limit_allows(self):
        engine, _ = make_engine({
            LIMITS_KEY: [limit("l1", "site", "youtube.com", 30)],
            USAGE_KEY: [usage("youtube.com", 1799)],
        })
        self.assertFalse(await engine.is_url_blocked("https://youtube.com/", NOW))

    async def test_category_quota_applies_through_inheritance(self):
        engine, _ = make_engine({
            DOMAIN_CATEGORIES_KEY: {"google.com": "Search"},
            LIMITS_KEY: [limit("l1", "category", "Search", 1)],
            USAGE_KEY: [usage("google.com", 60)],
        })
        self.assertTrue(await engine.is_url_blocked("https://mail.google.com/", NOW))

    async def test_snooze_overrides_block_rule(self):
        engine, _ = make_engine({
            RULES_KEY: [block_rule("Focus", "domain", "reddit.com")],
            SNOOZE_KEY: to_ms(NOW) + 60_000,
        })
        decision = await engine.decide("https://reddit.com/", NOW)
        self.assertFalse(decision.blocked)
        self.assertEqual(decision.source, "snooze")

    async def test_expired_snooze_is_ignored(self):
        engine, _ = make_engine({
            RULES_KEY: [block_rule("Focus", "domain", "reddit.com")],
            SNOOZE_KEY: to_ms(NOW) - 1,
        })
        self.assertTrue(await engine.is_url_blocked("https://reddit.com/", NOW))

    async def test_nothing_applies(self):
        engine, _ = make_engine({})
        decision = await engine.decide("https://example.com/", NOW)
        self.assertFalse(decision.blocked)
        self.assertEqual(decision.source, "none")

    async def test_explicit_block_survives_broken_usage_store(self):
        store = FlakyStore({RULES_KEY: [block_rule("Focus", "domain", "reddit.com")]})
        engine = AccessDecisionEngine(ConfigRepository(store))
        self.assertTrue(await engine.is_url_blocked("https://reddit.com/", NOW))
        self.assertFalse(await engine.is_url_blocked("https://example.com/", NOW))

    async def test_malformed_rule_does_not_break_decisions(self):
        engine, _ = make_engine({RULES_KEY: [
            {"id": "bad", "schedule": {"days": 5}},
            {"id": "worse", "schedule": "weekdays", "targets": 7},
            block_rule("Focus", "domain", "reddit.com"),
        ]})
        decision = await engine.decide("https://reddit.com/", NOW)
        self.assertTrue(decision.blocked)
        self.assertEqual(decision.source, "rule")

    async def test_rule_disabled_by_string_flag(self):
        rule = block_rule("Focus", "domain", "example.com")
        rule["enabled"] = "false"
        engine, _ = make_engine({RULES_KEY: [rule]})
        self.assertFalse(await engine.is_url_blocked("https://example.com/", NOW))

    async def test_statistics(self):
        stats = DecisionStats()
        engine, _ = make_engine({RULES_KEY: [block_rule("Focus", "domain", "reddit.com")]}, stats)
        await engine.decide("https://reddit.com/", NOW)
        await engine.decide("https://example.com/", NOW)
        snap = stats.snapshot()
        self.assertEqual((snap["evaluations"], snap["blocked"], snap["allowed"]), (2, 1, 1))


class TestMaterializedBlockSet(unittest.IsolatedAsyncioTestCase):
    async def test_combines_limits_and_rules(self):
        engine, _ = make_engine({
            DOMAIN_CATEGORIES_KEY: {"chess.com": "Games", "lichess.org": "Games"},
            LIMITS_KEY: [
                limit("l1", "site", "www.YouTube.com", 30),
                limit("l2", "category", "Games", 10),
                limit("l3", "site", "news.com", 30),
            ],
            USAGE_KEY: [usage("youtube.com", 1800), usage("chess.com", 600)],
            RULES_KEY: [
                block_rule("r1", "domain", "reddit.com"),
                block_rule("r2", "domain", "twitter.com", start="18:00", end="20:00"),
            ],
        })
        block_set = await engine.materialized_block_set(NOW)
        self.assertEqual(block_set.domains, {"youtube.com", "chess.com", "lichess.org", "reddit.com"})
        self.assertEqual(block_set.categories, {"Games"})

    async def test_category_rule_expands_to_members(self):
        engine, _ = make_engine({
            DOMAIN_CATEGORIES_KEY: {"facebook.com": "Work"},
            RULES_KEY: [block_rule("r1", "category", "Social")],
        })
        block_set = await engine.materialized_block_set(NOW)
        self.assertIn("instagram.com", block_set.domains)
        self.assertNotIn("facebook.com", block_set.domains)
        self.assertEqual(block_set.categories, {"Social"})

    async def test_wildcard_target_blocks_subdomains_only(self):
        engine, _ = make_engine({RULES_KEY: [block_rule("r1", "domain", "*.example.com")]})
        block_set = await engine.materialized_block_set(NOW)
        self.assertEqual(block_set.domains, set())
        self.assertEqual(block_set.subdomains, {"example.com"})
        self.assertEqual(block_set.to_dict()["subdomains"], ["example.com"])

    async def test_empty_while_snoozed(self):
        engine, _ = make_engine({
            RULES_KEY: [block_rule("r1", "domain", "reddit.com")],
            SNOOZE_KEY: to_ms(NOW) + 60_000,
        })
        block_set = await engine.materialized_block_set(NOW)
        self.assertEqual(block_set.domains, set())

    async def test_limit_statuses_unblocked_while_snoozed(self):
        engine, _ = make_engine({
            LIMITS_KEY: [limit("l1", "site", "youtube.com", 1)],
            USAGE_KEY: [usage("youtube.com", 600)],
            SNOOZE_KEY: to_ms(NOW) + 60_000,
        })
        statuses = await engine.limit_statuses(NOW)
        self.assertFalse(statuses[0].blocked)


if __name__ == "__main__":
    unittest.main()

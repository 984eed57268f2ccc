"""Constants and tuning values for the focusgate decision core."""

__version__ = "1.0"

# storage keys
LIMITS_KEY = "limits"
LIMIT_HISTORY_KEY = "limitHistory"
RULES_KEY = "advancedRules"
PATTERNS_KEY = "urlPatterns"
DOMAIN_CATEGORIES_KEY = "domainCategories"
CATEGORIES_KEY = "categories"
SNOOZE_KEY = "blockSnoozeUntil"
USAGE_KEY = "usageLogs"
USAGE_TICK_KEY = "usageTick"
REBUILD_TRIGGER_KEY = "rulesRebuildTrigger"
FORCE_REBUILD_KEY = "forceRuleRebuild"
LAST_BLOCKED_KEY = "lastBlockedDomain"

# keys whose change invalidates the materialized block set
REBUILD_KEYS = frozenset({
    LIMITS_KEY,
    USAGE_TICK_KEY,
    FORCE_REBUILD_KEY,
    RULES_KEY,
    PATTERNS_KEY,
    DOMAIN_CATEGORIES_KEY,
    REBUILD_TRIGGER_KEY,
    SNOOZE_KEY,
})

DEFAULT_CATEGORY = "Other"
DEFAULT_TIME = "00:00"

# tuning
DEBOUNCE_MS = 100
SNOOZE_DEBOUNCE_MS = 500
SNOOZE_BUFFER_MS = 2000
TICK_SECONDS = 60.0
PATTERN_CACHE_MAX = 1024
USAGE_RETENTION_MONTHS = 3

REDIRECT_TARGET = "focusgate://blocked"
RULE_ID_BASE = 10_000

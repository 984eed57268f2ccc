"""URL pattern matching with a per-pattern compilation cache."""

import re
from typing import Dict, Optional, Pattern, Tuple, Union
from urllib.parse import urlsplit

from constants import PATTERN_CACHE_MAX
from errors import InvalidPattern
from logger import NullLogger
from models import URLPattern


def glob_to_regex(glob: str, anchored: bool = False) -> str:
    # only '.' is escaped; other metacharacters in the glob pass through
    body = glob.replace(".", "\\.").replace("*", ".*").replace("?", ".")
    if anchored:
        return "^" + body + "$"
    return body


def compile_pattern(source: str) -> Union[Pattern, InvalidPattern]:
    """Compile case-insensitively; a bad expression comes back as a value, not raised."""
    try:
        return re.compile(source, re.IGNORECASE)
    except (re.error, TypeError) as e:
        return InvalidPattern(source, str(e))


def _hostname(value: str) -> Optional[str]:
    try:
        parts = urlsplit(value)
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    return parts.hostname or ""


def _strip_www(host: str) -> str:
    return host[4:] if host.startswith("www.") else host


class PatternMatcher:
    def __init__(self, logger=None, max_entries: int = PATTERN_CACHE_MAX):
        self.logger = logger or NullLogger()
        self.max_entries = max_entries
        self._cache: Dict[Tuple[str, str, str], Union[Pattern, InvalidPattern]] = {}

    def _compiled(self, key: str, kind: str, source: str) -> Optional[Pattern]:
        cache_key = (key, kind, source)
        compiled = self._cache.get(cache_key)
        if compiled is None:
            compiled = compile_pattern(source)
            if isinstance(compiled, InvalidPattern):
                self.logger.log_error(f"[patterns] {compiled} (id={key})")
            if len(self._cache) >= self.max_entries:
                self._cache.pop(next(iter(self._cache)))
            self._cache[cache_key] = compiled
        if isinstance(compiled, InvalidPattern):
            return None
        return compiled

    def matches(self, value: str, pattern: URLPattern) -> bool:
        if not value or not pattern.pattern:
            return False
        kind = pattern.type
        if kind == "exact":
            host = _hostname(value)
            if host is None:
                return value == pattern.pattern
            expected = _hostname(pattern.pattern)
            if expected is None:
                expected = pattern.pattern
            return _strip_www(host.lower()) == _strip_www(expected.lower())
        if kind == "contains":
            return pattern.pattern in value
        if kind == "glob":
            regex = self._compiled(pattern.id, kind, glob_to_regex(pattern.pattern))
            return bool(regex and regex.search(value))
        if kind == "regex":
            regex = self._compiled(pattern.id, kind, pattern.pattern)
            return bool(regex and regex.search(value))
        return False

    def matches_domain_glob(self, domain: str, glob: str) -> bool:
        """Whole-domain glob match used by `pattern` targets of scheduled rules."""
        if not domain or not glob:
            return False
        regex = self._compiled("target:" + glob, "glob-anchored", glob_to_regex(glob, anchored=True))
        return bool(regex and regex.search(domain))

    def cache_size(self) -> int:
        return len(self._cache)

import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from errors import InvalidPattern
from models import URLPattern
from patterns import PatternMatcher, compile_pattern, glob_to_regex


class RecordingLogger:
    def __init__(self):
        self.errors = []

    def log_access(self, message):
        pass

    def log_error(self, message):
        self.errors.append(message)

    def info(self, *a, **k):
        pass

    def error(self, *a, **k):
        pass


def pattern(text, kind, pid="p1"):
    return URLPattern(id=pid, pattern=text, type=kind)


class TestPatternMatcher(unittest.TestCase):
    def setUp(self):
        self.logger = RecordingLogger()
        self.matcher = PatternMatcher(self.logger)

    def test_exact_compares_hostnames_without_www(self):
        p = pattern("example.com", "exact")
        self.assertTrue(self.matcher.matches("https://www.example.com/path", p))
        self.assertFalse(self.matcher.matches("https://a.example.com/path", p))

    def test_exact_literal_for_non_url_input(self):
        p = pattern("example.com", "exact")
        self.assertTrue(self.matcher.matches("example.com", p))
        self.assertFalse(self.matcher.matches("a.example.com", p))

    def test_contains_is_case_sensitive(self):
        p = pattern("/shorts/", "contains")
        self.assertTrue(self.matcher.matches("https://youtube.com/shorts/abc", p))
        self.assertFalse(self.matcher.matches("https://youtube.com/SHORTS/abc", p))

    def test_glob(self):
        p = pattern("*.example.com/*", "glob")
        self.assertTrue(self.matcher.matches("http://a.example.com/path", p))
        self.assertFalse(self.matcher.matches("http://example.org/path", p))

    def test_glob_question_mark_and_case(self):
        p = pattern("news?.site.com", "glob")
        self.assertTrue(self.matcher.matches("https://NEWS1.site.com/", p))
        self.assertFalse(self.matcher.matches("https://news.sitexcom/", p))

    def test_regex_case_insensitive(self):
        p = pattern(r"reddit\.com/r/(funny|pics)", "regex")
        self.assertTrue(self.matcher.matches("https://www.Reddit.com/r/FUNNY/", p))
        self.assertFalse(self.matcher.matches("https://www.reddit.com/r/python/", p))

    def test_invalid_regex_never_raises(self):
        p = pattern("([unclosed", "regex", pid="bad")
        self.assertFalse(self.matcher.matches("https://example.com/", p))
        self.assertFalse(self.matcher.matches("https://example.com/", p))
        self.assertEqual(len(self.logger.errors), 1)

    def test_invalid_glob_is_non_matching(self):
        p = pattern("site(*", "glob", pid="bad-glob")
        self.assertFalse(self.matcher.matches("https://site(x.com/", p))

    def test_compiled_once_per_pattern(self):
        p = pattern("exa.ple", "regex")
        for _ in range(5):
            self.matcher.matches("https://example.com", p)
        self.assertEqual(self.matcher.cache_size(), 1)

    def test_edited_pattern_recompiles(self):
        self.assertTrue(self.matcher.matches("https://foo.com", pattern("foo", "regex")))
        self.assertFalse(self.matcher.matches("https://foo.com", pattern("bar", "regex")))

    def test_cache_is_bounded(self):
        matcher = PatternMatcher(max_entries=2)
        for i in range(5):
            matcher.matches("x", pattern("x", "regex", pid=str(i)))
        self.assertEqual(matcher.cache_size(), 2)

    def test_domain_glob_is_anchored(self):
        self.assertTrue(self.matcher.matches_domain_glob("news.example.com", "*.example.com"))
        self.assertFalse(self.matcher.matches_domain_glob("example.com.evil.org", "*.example.com"))

    def test_compile_pattern_returns_error_value(self):
        self.assertIsInstance(compile_pattern("(("), InvalidPattern)
        self.assertEqual(glob_to_regex("a.*?"), "a\\..*.")


if __name__ == "__main__":
    unittest.main()

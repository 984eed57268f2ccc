"""Domain key canonicalization and suffix matching."""

import re
from typing import List
from urllib.parse import urlsplit

_PORT_RE = re.compile(r":\d+$")


def normalize(value: str) -> str:
    v = (value or "").strip().lower()
    if not v:
        return ""
    if "://" in v:
        try:
            v = urlsplit(v).hostname or ""
        except ValueError:
            v = v.split("://", 1)[1]
    v = re.split(r"[/?#]", v, maxsplit=1)[0]
    v = _PORT_RE.sub("", v)
    if v.startswith("www."):
        v = v[4:]
    if v.endswith("."):
        v = v[:-1]
    return v


def domain_from_url(url: str) -> str:
    """Hostname of `url` as a domain key, or "" when `url` is not a URL."""
    try:
        parts = urlsplit((url or "").strip())
    except ValueError:
        return ""
    if not parts.scheme or not parts.netloc:
        return ""
    return normalize(parts.hostname or "")


def matches_domain(candidate: str, base: str) -> bool:
    if not candidate or not base:
        return False
    return candidate == base or candidate.endswith("." + base)


def parent_domains(domain: str) -> List[str]:
    """Parents of `domain` from nearest to farthest, bare TLD excluded."""
    parts = domain.split(".")
    return [".".join(parts[i:]) for i in range(1, len(parts) - 1)]

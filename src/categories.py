"""Domain to category resolution with parent-domain inheritance."""

from typing import Dict, Iterable, List, Optional

from constants import DEFAULT_CATEGORY
from domains import matches_domain, normalize, parent_domains

BUILTIN_CATEGORIES: Dict[str, List[str]] = {
    "Social": [
        "facebook.com", "instagram.com", "twitter.com", "x.com", "tiktok.com",
        "snapchat.com", "linkedin.com", "pinterest.com", "reddit.com", "discord.com",
        "whatsapp.com", "telegram.org", "mastodon.social", "threads.net",
    ],
    "Entertainment": [
        "youtube.com", "netflix.com", "hulu.com", "disney.com", "twitch.tv",
        "spotify.com", "soundcloud.com", "hbo.com", "crunchyroll.com",
        "funimation.com", "paramount.com",
    ],
    "News": [
        "cnn.com", "bbc.com", "reuters.com", "ap.org", "nytimes.com",
        "washingtonpost.com", "wsj.com", "theguardian.com", "npr.org",
        "bloomberg.com", "techcrunch.com", "arstechnica.com",
    ],
    "Shopping": [
        "amazon.com", "ebay.com", "walmart.com", "target.com", "bestbuy.com",
        "costco.com", "alibaba.com", "etsy.com", "shopify.com", "wayfair.com",
    ],
    "Gaming": [
        "steam.com", "epicgames.com", "blizzard.com", "riotgames.com",
        "minecraft.net", "roblox.com", "ign.com", "gamespot.com",
    ],
    "Development": [
        "github.com", "stackoverflow.com", "gitlab.com", "bitbucket.org",
        "codepen.io", "jsfiddle.net", "replit.com", "codesandbox.io",
    ],
}


class CategoryResolver:
    def __init__(self, mapping: Optional[Dict[str, str]] = None, builtin: Optional[Dict[str, List[str]]] = None):
        self.mapping: Dict[str, str] = {}
        for domain, category in (mapping or {}).items():
            key = normalize(domain)
            if key and category:
                self.mapping[key] = str(category)
        self.builtin = BUILTIN_CATEGORIES if builtin is None else builtin

    def explicit(self, domain: str) -> Optional[str]:
        """Mapped category of `domain` or its nearest mapped parent."""
        d = normalize(domain)
        if not d:
            return None
        if d in self.mapping:
            return self.mapping[d]
        for parent in parent_domains(d):
            if parent in self.mapping:
                return self.mapping[parent]
        return None

    def builtin_category(self, domain: str) -> Optional[str]:
        d = normalize(domain)
        for category, known in self.builtin.items():
            for base in known:
                if matches_domain(d, base):
                    return category
        return None

    def resolve(self, domain: str) -> str:
        return self.explicit(domain) or self.builtin_category(domain) or DEFAULT_CATEGORY

    def domains_for(self, category: str, extra: Iterable[str] = ()) -> List[str]:
        """Known domains whose resolved category is `category`.

        Candidates are the mapped domains, the built-in table and `extra`
        (e.g. domains seen in usage), each checked through `resolve` so an
        explicit mapping overrides a built-in association.
        """
        candidates = list(self.mapping)
        for known in self.builtin.values():
            candidates.extend(known)
        candidates.extend(normalize(d) for d in extra)
        out: List[str] = []
        seen = set()
        for d in candidates:
            if not d or d in seen:
                continue
            seen.add(d)
            if self.resolve(d) == category:
                out.append(d)
        return out

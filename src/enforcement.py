"""Enforcement directives built from the materialized block set."""

import asyncio
import os
import tempfile
from dataclasses import dataclass
from typing import List, Optional

from constants import REDIRECT_TARGET, RULE_ID_BASE
from domains import normalize
from interfaces import IEnforcer
from json_utils import json_dumps
from models import BlockSet

# single-page apps that need host regexes rather than url filters
REGEX_DOMAINS = {
    "x.com": [
        "^https?://([a-z0-9-]+\\.)?x\\.com/.*",
        "^https?://([a-z0-9-]+\\.)?twitter\\.com/.*",
        "^https?://([a-z0-9-]+\\.)?t\\.co/.*",
    ],
}
REGEX_DOMAINS["twitter.com"] = REGEX_DOMAINS["x.com"]


@dataclass(frozen=True)
class Directive:
    id: int
    redirect_target: str
    url_filter: Optional[str] = None
    regex_filter: Optional[str] = None
    priority: int = 1
    main_frame_only: bool = False

    def to_dict(self) -> dict:
        out = {"id": self.id, "priority": self.priority, "redirect": self.redirect_target}
        if self.url_filter is not None:
            out["urlFilter"] = self.url_filter
        if self.regex_filter is not None:
            out["regexFilter"] = self.regex_filter
        out["resourceTypes"] = ["main_frame"] if self.main_frame_only else ["main_frame", "sub_frame"]
        return out


def build_directives(block_set: BlockSet, redirect_target: str = REDIRECT_TARGET) -> List[Directive]:
    directives: List[Directive] = []
    seen_regex = set()
    next_id = RULE_ID_BASE
    for raw in sorted(block_set.domains):
        domain = normalize(raw)
        if not domain:
            continue
        if domain in REGEX_DOMAINS:
            for regex in REGEX_DOMAINS[domain]:
                if regex in seen_regex:
                    continue
                seen_regex.add(regex)
                directives.append(Directive(next_id, redirect_target, regex_filter=regex, priority=2, main_frame_only=True))
                next_id += 1
            continue
        for url_filter in (f"*://{domain}/*", f"*://www.{domain}/*", f"*://*.{domain}/*", f"||{domain}^"):
            directives.append(Directive(next_id, redirect_target, url_filter=url_filter))
            next_id += 1
    for raw in sorted(block_set.subdomains - block_set.domains):
        domain = normalize(raw)
        if not domain or domain in block_set.domains:
            continue
        directives.append(Directive(next_id, redirect_target, url_filter=f"*://*.{domain}/*"))
        next_id += 1
    return directives


class MemoryEnforcer(IEnforcer):
    def __init__(self):
        self.directives: List[Directive] = []
        self.installs = 0

    async def replace_all(self, directives: List[Directive]) -> None:
        self.directives = list(directives)
        self.installs += 1


class JsonFileEnforcer(IEnforcer):
    """Writes the directive set to a file that an external redirector watches."""

    def __init__(self, path: str):
        self.path = path

    def _write(self, payload: str) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(prefix=".directives-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    async def replace_all(self, directives: List[Directive]) -> None:
        payload = json_dumps([d.to_dict() for d in directives], indent=True)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write, payload)

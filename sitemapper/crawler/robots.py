# sitemapper/crawler/robots.py
"""
Parser and checker for robots.txt rules (longest match wins, RFC 9309).
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

__all__ = ("RobotsRules",)


@dataclass
class _Group:
    agents: List[str] = field(default_factory=list)
    rules: List[Tuple[bool, str]] = field(default_factory=list)
    crawl_delay: Optional[float] = None
    # a directive other than User-agent ends the agent list
    closed: bool = False


class RobotsRules:
    """Parsed robots.txt for one host."""

    _WILDCARDS = re.compile(r"[*$]")

    def __init__(self, text: str) -> None:
        self._groups: List[_Group] = []
        self._patterns: Dict[str, re.Pattern[str]] = {}
        self._parse(text)

    def can_fetch(self, user_agent: str, path: str) -> bool:
        """Return True if *user_agent* may fetch *path* (path + optional query)."""
        group = self._group_for(user_agent)
        if group is None:
            return True
        best = -1
        allowed = True
        for allow, pattern in group.rules:
            if not self._matches(pattern, path):
                continue
            weight = len(self._WILDCARDS.sub("", pattern))
            if weight > best or (weight == best and allow):
                best = weight
                allowed = allow
        return allowed

    def crawl_delay(self, user_agent: str) -> Optional[float]:
        group = self._group_for(user_agent)
        return None if group is None else group.crawl_delay

    def _parse(self, text: str) -> None:
        current: Optional[_Group] = None
        for raw in text.splitlines():
            line = raw.split("#", 1)[0].strip()
            if not line:
                continue
            key, _, value = line.partition(":")
            key = key.strip().lower()
            value = value.strip()
            if key == "user-agent":
                # consecutive User-agent lines share one group
                if current is None or current.closed:
                    current = _Group()
                    self._groups.append(current)
                current.agents.append(value.lower())
                continue
            if current is None:
                current = _Group(agents=["*"])
                self._groups.append(current)
            current.closed = True
            if key in ("allow", "disallow"):
                # empty Disallow allows everything
                if not value:
                    continue
                current.rules.append((key == "allow", value))
            elif key == "crawl-delay":
                try:
                    current.crawl_delay = float(value)
                except ValueError:
                    continue

    def _group_for(self, user_agent: str) -> Optional[_Group]:
        token = user_agent.lower().split("/", 1)[0]
        for group in self._groups:
            if any(a not in ("", "*") and token.startswith(a.split("/", 1)[0]) for a in group.agents):
                return group
        for group in self._groups:
            if "*" in group.agents:
                return group
        return None

    def _matches(self, pattern: str, path: str) -> bool:
        regex = self._patterns.get(pattern)
        if regex is None:
            anchored = pattern.endswith("$")
            body = pattern[:-1] if anchored else pattern
            escaped = re.escape(body).replace(r"\*", ".*")
            regex = re.compile("^" + escaped + ("$" if anchored else ""))
            self._patterns[pattern] = regex
        return regex.match(path) is not None

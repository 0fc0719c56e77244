# File: sitemapper/sitemap.py
"""sitemapper.sitemap: Хранилище карты сайта: записи страниц, граф ссылок и BFS-дерево.

Records live in a dense list indexed by an integer id assigned at first
discovery; URLs map to ids, and both the link graph and the BFS tree are
adjacency lists of ids, so cycles in the site never become reference cycles
here.  The traversal engine is the only writer.
"""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import asdict, replace
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from sitemapper.crawler.models import (
    EndChildren,
    FetchStatus,
    LinkEdge,
    PageRecord,
    StartChildren,
    TreeEvent,
    Visit,
    Visitor,
    dispatch,
)

__all__ = ["Sitemap"]


class Sitemap:
    """Per-invocation aggregate of page records and link edges."""

    def __init__(self, root: str, max_depth: Optional[int] = None) -> None:
        self.root = root
        self.max_depth = max_depth
        self._records: List[PageRecord] = []
        self._ids: Dict[str, int] = {}
        self._links: List[List[int]] = []
        self._link_sets: List[set[int]] = []
        self._children: List[List[int]] = []
        self._visit_order: List[int] = []

    # ------------------------------------------------------------------ #
    # writers                                                            #
    # ------------------------------------------------------------------ #

    def discover(self, url: str, depth: int, parent: Optional[str] = None) -> bool:
        """
        Register *url* as PENDING at *depth* unless it is already known.

        Returns True on first discovery; the first caller wins, later calls
        leave depth and parent untouched.
        """
        if url in self._ids:
            return False
        if parent is not None and parent not in self._ids:
            raise KeyError(f"unknown parent {parent!r}")
        idx = len(self._records)
        self._ids[url] = idx
        self._records.append(PageRecord(url=url, depth=depth, discovered_from=parent))
        self._links.append([])
        self._link_sets.append(set())
        self._children.append([])
        if parent is not None:
            self._children[self._ids[parent]].append(idx)
        return True

    def record(self, record: PageRecord) -> None:
        """Replace the PENDING record of ``record.url`` with its terminal state."""
        idx = self._ids.get(record.url)
        if idx is None:
            raise KeyError(f"{record.url!r} was never discovered")
        current = self._records[idx]
        if current.is_terminal:
            raise ValueError(f"{record.url!r} is already {current.status.value}")
        if not record.is_terminal:
            raise ValueError("only terminal records can be stored")
        # discovery facts are owned by the store
        self._records[idx] = replace(record, depth=current.depth, discovered_from=current.discovered_from)
        self._visit_order.append(idx)

    def add_edges(self, source: str, targets: Iterable[str]) -> None:
        """Append directed edges *source* → each target, ignoring repeats."""
        src = self._ids[source]
        seen = self._link_sets[src]
        for target in targets:
            dst = self._ids[target]
            if dst not in seen:
                seen.add(dst)
                self._links[src].append(dst)

    # ------------------------------------------------------------------ #
    # readers                                                            #
    # ------------------------------------------------------------------ #

    def __contains__(self, url: object) -> bool:
        return url in self._ids

    def __len__(self) -> int:
        return len(self._records)

    def get(self, url: str) -> Optional[PageRecord]:
        idx = self._ids.get(url)
        return None if idx is None else self._records[idx]

    def all_urls(self) -> List[str]:
        """Every discovered URL, in discovery order."""
        return [r.url for r in self._records]

    def links_from(self, url: str) -> List[str]:
        idx = self._ids.get(url)
        if idx is None:
            return []
        return [self._records[i].url for i in self._links[idx]]

    def edges(self) -> Iterator[LinkEdge]:
        for src, targets in enumerate(self._links):
            for dst in targets:
                yield LinkEdge(self._records[src].url, self._records[dst].url)

    def children(self, url: str) -> List[str]:
        """BFS-tree children of *url* that were actually processed."""
        idx = self._ids.get(url)
        if idx is None:
            return []
        return [self._records[i].url for i in self._tree_children(idx)]

    def visited(self) -> List[str]:
        """URLs in the order they reached a terminal state."""
        return [self._records[i].url for i in self._visit_order]

    def stats(self) -> Dict[str, int]:
        counts = Counter(r.status.value for r in self._records)
        return {status.value: counts.get(status.value, 0) for status in FetchStatus}

    def title(self, url: str) -> Optional[str]:
        rec = self.get(url)
        return rec.title if rec else None

    def summary(self, url: str) -> Optional[str]:
        rec = self.get(url)
        return rec.summary if rec else None

    # ------------------------------------------------------------------ #
    # tree view                                                          #
    # ------------------------------------------------------------------ #

    def _in_tree(self, idx: int) -> bool:
        rec = self._records[idx]
        if not rec.is_terminal:
            return False
        return self.max_depth is None or rec.depth <= self.max_depth

    def _tree_children(self, idx: int) -> List[int]:
        return [c for c in self._children[idx] if self._in_tree(c)]

    def events(self) -> Iterator[TreeEvent]:
        """
        Pre-order walk of the BFS tree as a well-nested event stream.

        ``Visit`` comes first for every node; nodes with tree children are
        followed by ``StartChildren``, their subtrees in discovery order and
        a matching ``EndChildren``.  Beyond-limit and never-fetched URLs
        are left out.
        """
        root = self._ids.get(self.root)
        if root is None or not self._in_tree(root):
            return
        # explicit stack: (idx, children iterator or None before the visit)
        stack: List[Tuple[int, Optional[Iterator[int]]]] = [(root, None)]
        while stack:
            idx, pending = stack.pop()
            rec = self._records[idx]
            if pending is None:
                yield Visit(rec.url, rec.depth, rec.title, rec.summary)
                kids = self._tree_children(idx)
                if not kids:
                    continue
                yield StartChildren(rec.url)
                pending = iter(kids)
            child = next(pending, None)
            if child is None:
                yield EndChildren(rec.url)
                continue
            stack.append((idx, pending))
            stack.append((child, None))

    def traverse(self, visitor: Visitor) -> None:
        for event in self.events():
            dispatch(event, visitor)

    def json(self, *, pretty: bool = False) -> str:
        """JSON dump of records and edges, mostly for debugging."""
        data = {
            "root": self.root,
            "max_depth": self.max_depth,
            "pages": [asdict(r) for r in self._records],
            "edges": [[e.source, e.target] for e in self.edges()],
        }
        return json.dumps(data, ensure_ascii=False, indent=2 if pretty else None, default=str)

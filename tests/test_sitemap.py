# File: tests/test_sitemap.py
import json

import pytest

from sitemapper.crawler.models import (
    EndChildren,
    FetchStatus,
    LinkEdge,
    PageRecord,
    StartChildren,
    Visit,
)
from sitemapper.sitemap import Sitemap

ROOT = "http://example.com/"


def fetched(url, depth=0, **kw):
    return PageRecord(url=url, depth=depth, status=FetchStatus.FETCHED, **kw)


def test_discover_first_caller_wins():
    sm = Sitemap(ROOT)
    assert sm.discover(ROOT, 0) is True
    assert sm.discover(ROOT + "a", 1, ROOT) is True
    assert sm.discover(ROOT + "a", 5, ROOT + "a") is False
    rec = sm.get(ROOT + "a")
    assert rec.depth == 1
    assert rec.discovered_from == ROOT
    assert rec.status is FetchStatus.PENDING
    assert len(sm) == 2
    assert ROOT + "a" in sm
    assert ROOT + "zzz" not in sm


def test_discover_with_unknown_parent_fails():
    sm = Sitemap(ROOT)
    with pytest.raises(KeyError):
        sm.discover(ROOT + "a", 1, ROOT)


def test_record_transitions_exactly_once():
    sm = Sitemap(ROOT)
    with pytest.raises(KeyError):
        sm.record(fetched(ROOT))
    sm.discover(ROOT, 0)
    with pytest.raises(ValueError):
        sm.record(PageRecord(url=ROOT, depth=0))
    sm.record(fetched(ROOT, title="Home"))
    with pytest.raises(ValueError):
        sm.record(PageRecord(url=ROOT, depth=0, status=FetchStatus.FAILED))
    assert sm.title(ROOT) == "Home"
    assert sm.visited() == [ROOT]


def test_record_keeps_discovery_facts():
    sm = Sitemap(ROOT)
    sm.discover(ROOT, 0)
    sm.discover(ROOT + "a", 1, ROOT)
    sm.record(fetched(ROOT + "a", depth=7, discovered_from="http://bogus/"))
    rec = sm.get(ROOT + "a")
    assert rec.depth == 1
    assert rec.discovered_from == ROOT


def test_add_edges_deduplicates_and_keeps_order():
    sm = Sitemap(ROOT)
    sm.discover(ROOT, 0)
    for name in ("c", "a", "b"):
        sm.discover(ROOT + name, 1, ROOT)
    sm.add_edges(ROOT, [ROOT + "c", ROOT + "a", ROOT + "c"])
    sm.add_edges(ROOT, [ROOT + "b", ROOT + "a", ROOT])
    assert sm.links_from(ROOT) == [ROOT + "c", ROOT + "a", ROOT + "b", ROOT]
    assert list(sm.edges())[0] == LinkEdge(ROOT, ROOT + "c")
    assert sm.links_from("http://unknown/") == []
    with pytest.raises(KeyError):
        sm.add_edges(ROOT, ["http://never-discovered/"])


def test_events_are_balanced_and_skip_pending(small_sitemap):
    events = list(small_sitemap.events())
    assert events == [
        Visit(ROOT, 0, "Home", "Welcome home"),
        StartChildren(ROOT),
        Visit(ROOT + "b", 1, None, "Bee page"),
        Visit(ROOT + "c", 1, "<C & co>", None),
        EndChildren(ROOT),
    ]
    depth = 0
    for ev in events:
        if isinstance(ev, StartChildren):
            depth += 1
        elif isinstance(ev, EndChildren):
            depth -= 1
        assert depth >= 0
    assert depth == 0


def test_children_exclude_pending_and_beyond_depth(small_sitemap):
    assert small_sitemap.children(ROOT) == [ROOT + "b", ROOT + "c"]
    assert small_sitemap.children(ROOT + "b") == []
    assert small_sitemap.children("http://nowhere/") == []
    assert small_sitemap.all_urls() == [ROOT, ROOT + "b", ROOT + "c", ROOT + "d"]


def test_beyond_depth_record_never_enters_tree():
    sm = Sitemap(ROOT, max_depth=0)
    sm.discover(ROOT, 0)
    sm.discover(ROOT + "x", 1, ROOT)
    sm.record(fetched(ROOT))
    sm.record(fetched(ROOT + "x", depth=1))
    assert sm.children(ROOT) == []
    assert list(sm.events()) == [Visit(ROOT, 0, None, None)]


def test_empty_and_unfetched_root_yield_no_events():
    sm = Sitemap(ROOT)
    assert list(sm.events()) == []
    sm.discover(ROOT, 0)
    assert list(sm.events()) == []


def test_deep_chain_does_not_recurse():
    sm = Sitemap(ROOT)
    sm.discover(ROOT, 0)
    sm.record(fetched(ROOT))
    parent = ROOT
    for i in range(1, 3000):
        url = f"{ROOT}{i}"
        sm.discover(url, i, parent)
        sm.record(fetched(url, depth=i))
        parent = url
    events = list(sm.events())
    assert sum(isinstance(e, Visit) for e in events) == 3000
    assert isinstance(events[-1], EndChildren)


def test_stats(small_sitemap):
    assert small_sitemap.stats() == {"pending": 1, "fetched": 2, "failed": 1}


def test_traverse_calls_visitor_hooks(small_sitemap):
    calls = []

    class Visitor:
        def start_children(self, parent_url):
            calls.append(("start", parent_url))

        def visit(self, url, depth, title, summary):
            calls.append(("visit", url))

        def end_children(self, parent_url):
            calls.append(("end", parent_url))

    small_sitemap.traverse(Visitor())
    assert calls == [
        ("visit", ROOT),
        ("start", ROOT),
        ("visit", ROOT + "b"),
        ("visit", ROOT + "c"),
        ("end", ROOT),
    ]


def test_json_dump(small_sitemap):
    data = json.loads(small_sitemap.json(pretty=True))
    assert data["root"] == ROOT
    assert data["max_depth"] == 1
    assert [p["url"] for p in data["pages"]] == small_sitemap.all_urls()
    assert [ROOT + "b", ROOT + "d"] in data["edges"]
    assert data["pages"][2]["failure"]["status_code"] == 500

# File: tests/test_robots.py
import pytest

from sitemapper.crawler.robots import RobotsRules

ROBOTS = """
# comment line
User-agent: BadBot
Disallow: /

User-agent: TestAgent
User-agent: OtherAgent
Disallow: /private
Allow: /private/open
Crawl-delay: 1.5

User-agent: *
Disallow: /tmp/
Disallow: /*.pdf$
Allow: /tmp/keep
"""


@pytest.mark.parametrize(
    "agent,path,expected",
    [
        ("BadBot/2.0", "/anything", False),
        ("TestAgent/1.0", "/private/x", False),
        ("TestAgent/1.0", "/private/open/page", True),
        ("OtherAgent", "/private", False),
        ("TestAgent/1.0", "/tmp/x", True),
        ("Mozilla/5.0", "/tmp/x", False),
        ("Mozilla/5.0", "/tmp/keep/me", True),
        ("Mozilla/5.0", "/docs/file.pdf", False),
        ("Mozilla/5.0", "/docs/file.pdf?x=1", True),
        ("Mozilla/5.0", "/", True),
    ],
)
def test_can_fetch(agent, path, expected):
    assert RobotsRules(ROBOTS).can_fetch(agent, path) is expected


def test_crawl_delay_per_group():
    rules = RobotsRules(ROBOTS)
    assert rules.crawl_delay("TestAgent/1.0") == 1.5
    assert rules.crawl_delay("Mozilla/5.0") is None


def test_empty_disallow_keeps_groups_apart():
    rules = RobotsRules("User-agent: a\nDisallow:\n\nUser-agent: b\nDisallow: /x\n")
    assert rules.can_fetch("a", "/x")
    assert not rules.can_fetch("b", "/x")


def test_allow_wins_on_equal_length():
    rules = RobotsRules("User-agent: *\nDisallow: /page\nAllow: /page\n")
    assert rules.can_fetch("any", "/page")


def test_no_matching_group_allows_everything():
    rules = RobotsRules("User-agent: SomeoneElse\nDisallow: /\n")
    assert rules.can_fetch("TestAgent/1.0", "/secret")
    assert RobotsRules("").can_fetch("TestAgent/1.0", "/")


def test_invalid_crawl_delay_is_ignored():
    rules = RobotsRules("User-agent: *\nCrawl-delay: soon\nDisallow: /x\n")
    assert rules.crawl_delay("bot") is None
    assert not rules.can_fetch("bot", "/x/y")

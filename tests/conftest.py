# File: tests/conftest.py
from __future__ import annotations

from collections import Counter
from typing import Callable, Dict, Iterable, Optional

import pytest
import pytest_asyncio
from aiohttp import web

from sitemapper.config import SitemapConfig
from sitemapper.crawler.models import FailureKind, FetchFailure, FetchStatus, PageRecord
from sitemapper.sitemap import Sitemap


def pytest_configure(config):
    """Register custom markers so that `--strict-markers` does not fail."""
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )


def html_page(title: Optional[str] = None, body: str = "", links: Iterable[str] = ()) -> str:
    """Build a small HTML document with the given title, text and links."""
    head = f"<title>{title}</title>" if title is not None else ""
    anchors = "".join(f'<a href="{href}">{href}</a> ' for href in links)
    return f"<html><head>{head}</head><body><p>{body}</p>{anchors}</body></html>"


def html_app(pages: Dict[str, str], hits: Optional[Counter] = None) -> web.Application:
    """aiohttp app serving *pages* (path -> HTML) and counting requests per path."""
    app = web.Application()

    def make_handler(path: str, text: str):
        async def handler(_request):
            if hits is not None:
                hits[path] += 1
            return web.Response(text=text, content_type="text/html")

        return handler

    for path, text in pages.items():
        app.router.add_get(path, make_handler(path, text))
    return app


# --------------------------------------------------------------------------- #
#                                  Fixtures                                   #
# --------------------------------------------------------------------------- #


@pytest.fixture()
def make_config() -> Callable[..., SitemapConfig]:
    """Factory for SitemapConfig with fast, deterministic test defaults."""

    def _make(root_url: str, **overrides) -> SitemapConfig:
        params = dict(
            root_url=root_url,
            timeout=2.0,
            retry_times=0,
            retry_backoff=0.0,
            concurrency=4,
            user_agent="TestAgent/1.0",
            env_proxy=False,
        )
        params.update(overrides)
        return SitemapConfig(**params)

    return _make


@pytest_asyncio.fixture
async def serve(unused_tcp_port_factory):
    """Start aiohttp apps on free ports; returns their base URLs; cleans up afterwards."""
    runners = []

    async def _serve(app: web.Application) -> str:
        runner = web.AppRunner(app)
        await runner.setup()
        port = unused_tcp_port_factory()
        site = web.TCPSite(runner, "127.0.0.1", port)
        await site.start()
        runners.append(runner)
        return f"http://127.0.0.1:{port}"

    yield _serve

    for runner in runners:
        await runner.cleanup()


@pytest.fixture()
def small_sitemap() -> Sitemap:
    """
    Hand-built sitemap::

        /            "Home"     fetched   -> /b, /c
        /b           no title   fetched   -> /d, /
        /c           "<C & co>" failed (HTTP 500)
        /d           never fetched (beyond depth 1)
    """
    root = "http://example.com/"
    b, c, d = root + "b", root + "c", root + "d"
    sitemap = Sitemap(root, max_depth=1)
    sitemap.discover(root, 0)
    sitemap.discover(b, 1, root)
    sitemap.discover(c, 1, root)
    sitemap.add_edges(root, [b, c])
    sitemap.record(PageRecord(url=root, depth=0, title="Home", summary="Welcome home",
                              outbound_links=(b, c), status=FetchStatus.FETCHED))
    sitemap.discover(d, 2, b)
    sitemap.add_edges(b, [d, root])
    sitemap.record(PageRecord(url=b, depth=1, summary="Bee page",
                              outbound_links=(d, root), status=FetchStatus.FETCHED))
    sitemap.record(PageRecord(url=c, depth=1, title="<C & co>", status=FetchStatus.FAILED,
                              failure=FetchFailure(FailureKind.HTTP_STATUS, "Server Error", 500)))
    return sitemap

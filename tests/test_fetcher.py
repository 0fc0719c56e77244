# File: tests/test_fetcher.py
from __future__ import annotations

import asyncio
import time

import pytest
from aiohttp import ClientSession, ClientTimeout, web

from sitemapper.crawler.fetcher import Fetcher, HostRateLimiter
from sitemapper.crawler.models import FailureKind, FetchFailure


@pytest.mark.asyncio()
async def test_fetch_html_and_redirect(serve, make_config):
    app = web.Application()

    async def page(_):
        return web.Response(body="<title>Привет</title>".encode("cp1251"),
                            content_type="text/html", charset="windows-1251")

    async def moved(_):
        raise web.HTTPFound("/page")

    app.router.add_get("/page", page)
    app.router.add_get("/old", moved)
    base = await serve(app)

    async with ClientSession(timeout=ClientTimeout(total=2)) as session:
        fetcher = Fetcher(session, make_config(base))
        result = await fetcher.fetch(f"{base}/old")

    assert result.ok
    assert result.final_url == f"{base}/page"
    assert result.status == 200
    assert result.content_type == "text/html"
    assert result.charset == "windows-1251"
    assert result.body.decode("cp1251") == "<title>Привет</title>"


@pytest.mark.asyncio()
async def test_fetch_failures(serve, make_config, unused_tcp_port_factory):
    app = web.Application()

    async def image(_):
        return web.Response(body=b"\x89PNG", content_type="image/png")

    app.router.add_get("/img.png", image)
    base = await serve(app)

    async with ClientSession(timeout=ClientTimeout(total=2)) as session:
        fetcher = Fetcher(session, make_config(base))
        not_html = await fetcher.fetch(f"{base}/img.png")
        missing = await fetcher.fetch(f"{base}/missing")
        refused = await fetcher.fetch(f"http://127.0.0.1:{unused_tcp_port_factory()}/")

    assert not_html.failure.kind is FailureKind.NOT_HTML
    assert not_html.is_leaf and not not_html.failure.is_fatal
    assert not_html.body is None

    assert missing.failure.kind is FailureKind.HTTP_STATUS
    assert missing.failure.status_code == 404
    assert str(missing.failure) == "HTTP 404"
    assert not missing.failure.is_transient

    assert refused.failure.kind is FailureKind.NETWORK_ERROR
    assert refused.failure.is_transient


@pytest.mark.asyncio()
async def test_fetch_text_for_robots(serve, make_config):
    app = web.Application()

    async def robots(_):
        return web.Response(text="User-agent: *\nDisallow: /x\n", content_type="text/plain")

    app.router.add_get("/robots.txt", robots)
    base = await serve(app)

    async with ClientSession() as session:
        fetcher = Fetcher(session, make_config(base))
        assert "Disallow: /x" in await fetcher.fetch_text(f"{base}/robots.txt")
        assert await fetcher.fetch_text(f"{base}/nope.txt") is None


def test_credentials_only_for_root_host(make_config):
    cfg = make_config("http://example.com/", username="u", password="p")
    fetcher = Fetcher(session=None, config=cfg)
    assert fetcher._auth_for("http://example.com/a") is not None
    assert fetcher._auth_for("http://example.com:8080/a") is None
    assert fetcher._auth_for("http://evil.example.net/") is None
    assert Fetcher(session=None, config=make_config("http://example.com/"))._auth_for("http://example.com/") is None


@pytest.mark.parametrize(
    "failure,transient",
    [
        (FetchFailure(FailureKind.TIMEOUT), True),
        (FetchFailure(FailureKind.NETWORK_ERROR, "reset"), True),
        (FetchFailure(FailureKind.HTTP_STATUS, "", 503), True),
        (FetchFailure(FailureKind.HTTP_STATUS, "", 429), True),
        (FetchFailure(FailureKind.HTTP_STATUS, "", 403), False),
        (FetchFailure(FailureKind.DISALLOWED, "robots.txt"), False),
    ],
)
def test_transient_failures(failure, transient):
    assert failure.is_transient is transient


@pytest.mark.asyncio()
async def test_rate_limiter_spaces_requests_per_host():
    limiter = HostRateLimiter(0.1)
    start = time.monotonic()
    await asyncio.gather(*(limiter.wait("http://a.example/") for _ in range(3)))
    assert time.monotonic() - start >= 0.19

    start = time.monotonic()
    await limiter.wait("http://b.example/")
    assert time.monotonic() - start < 0.1


@pytest.mark.asyncio()
async def test_rate_limiter_honours_crawl_delay():
    limiter = HostRateLimiter(0.0)
    start = time.monotonic()
    await limiter.wait("http://a.example/", crawl_delay=0.15)
    await limiter.wait("http://a.example/", crawl_delay=0.15)
    assert time.monotonic() - start >= 0.14

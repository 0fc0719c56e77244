# sitemapper/crawler/fetcher.py
"""
Fetcher module: one HTTP GET per call with proxy, credentials, timeout and
per-host politeness delay.  Retries are the traversal engine's business.
"""
from __future__ import annotations

import asyncio
import time
from typing import Dict, Optional
from urllib.parse import urlsplit

from aiohttp import BasicAuth, ClientError, ClientSession

from sitemapper.config import SitemapConfig
from sitemapper.crawler.models import FailureKind, FetchFailure, FetchResult
from sitemapper.logger import get_logger

__all__ = ("Fetcher", "HostRateLimiter", "HTML_TYPES")

HTML_TYPES = frozenset({"text/html", "application/xhtml+xml"})

log = get_logger("fetcher")


class HostRateLimiter:
    """Enforces a minimum interval between requests to the same host."""

    def __init__(self, interval: float = 0.0) -> None:
        self.interval = max(0.0, interval)
        self._last: Dict[str, float] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    async def wait(self, url: str, crawl_delay: Optional[float] = None) -> None:
        host = urlsplit(url).netloc.lower()
        interval = max(self.interval, crawl_delay or 0.0)
        if not host or interval <= 0:
            return
        lock = self._locks.setdefault(host, asyncio.Lock())
        async with lock:
            last = self._last.get(host)
            if last is not None:
                wait = interval - (time.monotonic() - last)
                if wait > 0:
                    await asyncio.sleep(wait)
            self._last[host] = time.monotonic()


class Fetcher:
    """Handles HTTP fetching with proxy, auth, politeness delay and timeout."""

    def __init__(
        self,
        session: ClientSession,
        config: SitemapConfig,
        limiter: Optional[HostRateLimiter] = None,
    ) -> None:
        self.session = session
        self.config = config
        self.limiter = limiter or HostRateLimiter(config.delay)
        self.crawl_delay: Optional[float] = None
        self._root_host = urlsplit(str(config.root_url)).netloc.lower()
        self._auth: Optional[BasicAuth] = None
        if config.username:
            password = config.password.get_secret_value() if config.password else ""
            self._auth = BasicAuth(config.username, password)

    def _auth_for(self, url: str) -> Optional[BasicAuth]:
        # credentials never leave the root host
        if self._auth is not None and urlsplit(url).netloc.lower() == self._root_host:
            return self._auth
        return None

    async def fetch(self, url: str) -> FetchResult:
        """
        GET *url* once.

        Returns a FetchResult carrying the body for HTML documents, a NOT_HTML
        failure for other content types, and NETWORK_ERROR / TIMEOUT /
        HTTP_STATUS failures otherwise.  Never raises for network problems.
        """
        await self.limiter.wait(url, self.crawl_delay)
        log.debug("GET %s", url)
        try:
            async with self.session.get(
                url,
                proxy=self.config.proxy,
                auth=self._auth_for(url),
                allow_redirects=True,
            ) as resp:
                final_url = str(resp.url)
                mime = resp.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
                if resp.status >= 400:
                    return FetchResult(
                        url=url,
                        final_url=final_url,
                        status=resp.status,
                        content_type=mime or None,
                        failure=FetchFailure(FailureKind.HTTP_STATUS, resp.reason or "", resp.status),
                    )
                if mime not in HTML_TYPES:
                    return FetchResult(
                        url=url,
                        final_url=final_url,
                        status=resp.status,
                        content_type=mime or None,
                        failure=FetchFailure(FailureKind.NOT_HTML, mime or "no content type"),
                    )
                body = await resp.read()
                return FetchResult(
                    url=url,
                    final_url=final_url,
                    status=resp.status,
                    content_type=mime,
                    charset=resp.charset,
                    body=body,
                )
        except asyncio.TimeoutError:
            return FetchResult(url=url, failure=FetchFailure(FailureKind.TIMEOUT, f"no response in {self.config.timeout}s"))
        except ClientError as exc:
            return FetchResult(url=url, failure=FetchFailure(FailureKind.NETWORK_ERROR, str(exc) or type(exc).__name__))

    async def fetch_text(self, url: str) -> Optional[str]:
        """GET a small text resource (robots.txt); None on any failure or non-200."""
        try:
            async with self.session.get(url, proxy=self.config.proxy, auth=self._auth_for(url)) as resp:
                if resp.status != 200:
                    log.debug("%s -> HTTP %s", url, resp.status)
                    return None
                return await resp.text(errors="replace")
        except (asyncio.TimeoutError, ClientError) as exc:
            log.debug("Error loading %s: %s", url, exc)
            return None

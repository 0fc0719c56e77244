# === FILE: sitemapper/crawler/traversal.py ===
from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence
from urllib.parse import urlsplit

from aiohttp import ClientSession, ClientTimeout

from sitemapper.config import SitemapConfig
from sitemapper.crawler.fetcher import Fetcher
from sitemapper.crawler.link_extractor import extract
from sitemapper.crawler.models import (
    ExtractedPage,
    FailureKind,
    FetchFailure,
    FetchResult,
    FetchStatus,
    FrontierEntry,
    PageRecord,
    Visitor,
)
from sitemapper.crawler.normalizer import normalize, same_site
from sitemapper.crawler.robots import RobotsRules
from sitemapper.errors import UrlError
from sitemapper.logger import get_logger
from sitemapper.sitemap import Sitemap

__all__ = ("TraversalEngine", "PageOutcome")


@dataclass(slots=True)
class PageOutcome:
    """What a worker learned about one frontier entry."""
    fetch: FetchResult
    page: Optional[ExtractedPage] = None
    attempts: int = 1


class TraversalEngine:
    """Breadth-first site traversal with depth limit, retries and cancellation.

    Each level is drained by a pool of workers; the engine alone writes to
    the Sitemap, applying outcomes in frontier order once the whole level
    is terminal, so depth d+1 never starts before depth d is done.
    """

    def __init__(self, config: SitemapConfig, cancel_event: Optional[asyncio.Event] = None) -> None:
        self.config = config
        self.session: Optional[ClientSession] = None
        self.fetcher: Optional[Fetcher] = None
        self.robots: Optional[RobotsRules] = None
        self.sitemap: Optional[Sitemap] = None
        self.logger = get_logger("crawler")
        self._cancel = cancel_event or asyncio.Event()
        self._deadline: Optional[float] = None
        self._fetches = 0

    async def __aenter__(self) -> TraversalEngine:
        timeout = ClientTimeout(total=self.config.timeout)
        headers = {"User-Agent": self.config.user_agent}
        if self.config.email:
            headers["From"] = self.config.email
        self.session = ClientSession(
            timeout=timeout,
            headers=headers,
            raise_for_status=False,
            trust_env=self.config.env_proxy and self.config.proxy is None,
        )
        self.fetcher = Fetcher(self.session, self.config)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.session and not self.session.closed:
            await self.session.close()

    # ------------------------------------------------------------------ #
    # public API                                                         #
    # ------------------------------------------------------------------ #

    def cancel(self) -> None:
        """Stop issuing new fetches; in-flight ones finish, the rest stay pending."""
        self._cancel.set()

    @property
    def stopped(self) -> bool:
        if self._cancel.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    async def run(self) -> Sitemap:
        """Traverse the site from the configured root and return the Sitemap.

        Raises MalformedURL / UnsupportedScheme if the root itself is unusable.
        Partial results after cancellation or deadline are returned as-is.
        """
        if self.fetcher is None:
            raise RuntimeError("Session not initialized")
        root = normalize(str(self.config.root_url))
        max_depth = self.config.max_depth
        self.sitemap = Sitemap(root, max_depth)
        self.sitemap.discover(root, 0)
        if self.config.deadline is not None:
            self._deadline = time.monotonic() + self.config.deadline

        self.logger.info("Старт обхода: %s (depth=%s)", root, "∞" if max_depth is None else max_depth)
        start = time.monotonic()
        if self.config.respect_robots:
            await self._load_robots(root)

        level: List[FrontierEntry] = [FrontierEntry(root, 0)]
        while level and not self.stopped:
            level = self._apply_budget(level)
            if not level:
                break
            depth = level[0].depth
            self.logger.debug("Level %d: %d URL(s)", depth, len(level))
            outcomes = await self._run_level(level)
            level = self._apply_level(level, outcomes)

        duration = time.monotonic() - start
        stats = self.sitemap.stats()
        self.logger.info(
            "Завершено: %d получено, %d ошибок, %d не загружено за %.2f с",
            stats[FetchStatus.FETCHED.value],
            stats[FetchStatus.FAILED.value],
            stats[FetchStatus.PENDING.value],
            duration,
        )
        if self.stopped:
            self.logger.info("Обход прерван, результат неполный")
        return self.sitemap

    async def traverse(self, visitor: Visitor) -> Sitemap:
        """Run the traversal, then drive *visitor* through the BFS tree events."""
        sitemap = await self.run()
        sitemap.traverse(visitor)
        return sitemap

    # ------------------------------------------------------------------ #
    # level processing                                                   #
    # ------------------------------------------------------------------ #

    def _apply_budget(self, level: List[FrontierEntry]) -> List[FrontierEntry]:
        if self.config.max_pages is None:
            return level
        remaining = self.config.max_pages - self._fetches
        if remaining < len(level):
            self.logger.info("Лимит страниц %d достигнут", self.config.max_pages)
        return level[: max(0, remaining)]

    async def _run_level(self, level: Sequence[FrontierEntry]) -> List[Optional[PageOutcome]]:
        queue: asyncio.Queue[int] = asyncio.Queue()
        for i in range(len(level)):
            queue.put_nowait(i)
        outcomes: List[Optional[PageOutcome]] = [None] * len(level)
        errors: List[BaseException] = []
        workers = [
            asyncio.create_task(self._worker(queue, level, outcomes, errors))
            for _ in range(min(self.config.concurrency, len(level)))
        ]
        try:
            await queue.join()
        finally:
            for w in workers:
                w.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
        if errors:
            raise errors[0]
        return outcomes

    async def _worker(
        self,
        queue: asyncio.Queue[int],
        level: Sequence[FrontierEntry],
        outcomes: List[Optional[PageOutcome]],
        errors: List[BaseException],
    ) -> None:
        while True:
            i = await queue.get()
            try:
                if not self.stopped and not errors:
                    outcomes[i] = await self._process(level[i].url)
            except Exception as exc:
                # re-raised by _run_level once the level barrier is released
                errors.append(exc)
            finally:
                queue.task_done()

    async def _process(self, url: str) -> PageOutcome:
        self._fetches += 1
        if self.robots is not None and not self._robots_allow(url):
            self.logger.info("robots.txt запрещает %s", url)
            return PageOutcome(FetchResult(url=url, failure=FetchFailure(FailureKind.DISALLOWED, "robots.txt")), attempts=0)

        result, attempts = await self._fetch_with_retry(url)
        page = None
        if result.ok and result.body is not None:
            page = extract(
                result.body,
                result.final_url or url,
                summary_length=self.config.summary_length,
                encoding=result.charset,
            )
        return PageOutcome(result, page, attempts)

    async def _fetch_with_retry(self, url: str) -> tuple[FetchResult, int]:
        assert self.fetcher is not None
        attempt = 0
        while True:
            attempt += 1
            self.logger.debug("Fetch %s (attempt %d/%d)", url, attempt, self.config.retry_times + 1)
            result = await self.fetcher.fetch(url)
            failure = result.failure
            if failure is None or not failure.is_transient:
                return result, attempt
            if attempt > self.config.retry_times or self.stopped:
                return result, attempt
            backoff = min(60.0, self.config.retry_backoff * (2 ** (attempt - 1) + random.random()))
            if self._deadline is not None and time.monotonic() + backoff >= self._deadline:
                # the retry could only start after the deadline
                return result, attempt
            self.logger.debug("Retry %d/%d for %s after %.2f s (%s)", attempt, self.config.retry_times, url, backoff, failure)
            await self._backoff(backoff)
            if self.stopped:
                return result, attempt

    async def _backoff(self, delay: float) -> None:
        """Sleep up to *delay* seconds, waking early when the traversal is cancelled."""
        waiter = asyncio.ensure_future(self._cancel.wait())
        try:
            await asyncio.wait({waiter}, timeout=delay)
        finally:
            waiter.cancel()

    def _apply_level(
        self,
        level: Sequence[FrontierEntry],
        outcomes: Sequence[Optional[PageOutcome]],
    ) -> List[FrontierEntry]:
        """Write outcomes to the sitemap in frontier order; return the next level."""
        assert self.sitemap is not None
        max_depth = self.config.max_depth
        next_level: List[FrontierEntry] = []
        for entry, outcome in zip(level, outcomes):
            if outcome is None:
                continue
            result = outcome.fetch
            failure = result.failure
            if failure is not None and failure.is_fatal:
                self.logger.info("Ошибка %s: %s (попыток: %d)", entry.url, failure, outcome.attempts)
                self.sitemap.record(
                    PageRecord(
                        url=entry.url,
                        depth=entry.depth,
                        status=FetchStatus.FAILED,
                        failure=failure,
                        content_type=result.content_type,
                    )
                )
                continue

            page = outcome.page
            links: List[str] = []
            if page is not None:
                child_depth = entry.depth + 1
                for target in self._resolve_links(page):
                    if self.sitemap.discover(target, child_depth, entry.url):
                        if max_depth is None or child_depth <= max_depth:
                            next_level.append(FrontierEntry(target, child_depth, entry.url))
                    links.append(target)
                self.sitemap.add_edges(entry.url, links)

            self.sitemap.record(
                PageRecord(
                    url=entry.url,
                    depth=entry.depth,
                    title=page.title if page else None,
                    summary=page.summary if page else None,
                    outbound_links=tuple(self.sitemap.links_from(entry.url)),
                    status=FetchStatus.FETCHED,
                    failure=failure,
                    content_type=result.content_type,
                )
            )
        return next_level

    def _resolve_links(self, page: ExtractedPage) -> List[str]:
        assert self.sitemap is not None
        resolved: List[str] = []
        for raw in page.links:
            try:
                target = normalize(raw, page.base_url)
            except UrlError as exc:
                self.logger.debug("Skip link %r: %s", raw, exc.reason)
                continue
            if not same_site(target, self.sitemap.root):
                continue
            resolved.append(target)
        return resolved

    # ------------------------------------------------------------------ #
    # robots.txt                                                         #
    # ------------------------------------------------------------------ #

    async def _load_robots(self, root: str) -> None:
        assert self.fetcher is not None
        robots_url = normalize("/robots.txt", root)
        text = await self.fetcher.fetch_text(robots_url)
        if text is None:
            self.robots = None
            return
        self.robots = RobotsRules(text)
        delay = self.robots.crawl_delay(self.config.user_agent)
        if delay:
            self.logger.debug("robots.txt Crawl-delay: %s", delay)
            self.fetcher.crawl_delay = delay

    def _robots_allow(self, url: str) -> bool:
        assert self.robots is not None
        parts = urlsplit(url)
        path = parts.path or "/"
        if parts.query:
            path = f"{path}?{parts.query}"
        return self.robots.can_fetch(self.config.user_agent, path)

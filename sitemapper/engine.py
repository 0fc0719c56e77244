# File: sitemapper/engine.py
"""sitemapper.engine: Orchestration layer для запуска обхода сайта."""

from __future__ import annotations

import asyncio
from typing import Optional

from sitemapper.config import SitemapConfig
from sitemapper.crawler.traversal import TraversalEngine
from sitemapper.sitemap import Sitemap

__all__ = ["start_crawl"]


async def start_crawl(cfg: SitemapConfig, cancel_event: Optional[asyncio.Event] = None) -> Sitemap:
    """
    Запускает TraversalEngine в контексте и возвращает заполненный Sitemap.

    Parameters
    ----------
    cfg : SitemapConfig
        Конфигурация обхода.
    cancel_event : asyncio.Event, optional
        Внешний сигнал отмены: новые запросы перестают выдаваться,
        собранное к этому моменту возвращается как есть.

    Returns
    -------
    Sitemap
        Записи страниц, граф ссылок и BFS-дерево.
    """
    async with TraversalEngine(cfg, cancel_event=cancel_event) as engine:
        return await engine.run()

# File: sitemapper/report/base.py
"""sitemapper.report.base: Общий интерфейс рендереров карты сайта.

Two families:

* :class:`TreeRenderer` – consumes the BFS-tree event stream
  (``visit`` / ``start_children`` / ``end_children``) and writes output as
  the events arrive, so the tree is never materialised twice.
* :class:`GraphRenderer` – walks ``all_urls()`` / ``links_from()`` directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, TextIO

from sitemapper import __version__
from sitemapper.sitemap import Sitemap

__all__ = ["Renderer", "TreeRenderer", "GraphRenderer", "NO_TITLE", "NO_SUMMARY", "PROGRAM"]

NO_TITLE = "[No Title]"
NO_SUMMARY = "[No Summary]"
PROGRAM = "sitemapper"


class Renderer(ABC):
    """Базовый рендерер: заголовок документа и время генерации."""

    def __init__(self, title: str, *, generated_at: Optional[datetime] = None) -> None:
        self.title = title
        self.generated_at = generated_at or datetime.now()
        self._out: Optional[TextIO] = None

    @property
    def generated(self) -> str:
        return self.generated_at.strftime("on %A %d %B %Y at %H:%M:%S")

    @property
    def signature(self) -> str:
        return f"{PROGRAM} version {__version__}"

    def write(self, text: str) -> None:
        if self._out is None:
            raise RuntimeError("write() outside of render()")
        self._out.write(text)

    @abstractmethod
    def render(self, sitemap: Sitemap, out: TextIO) -> None:
        """Записывает полный документ для *sitemap* в *out*."""


class TreeRenderer(Renderer):
    """Renderer driven by the visitor events of :meth:`Sitemap.events`."""

    def render(self, sitemap: Sitemap, out: TextIO) -> None:
        self._out = out
        try:
            self.page_start()
            self.start_all()
            sitemap.traverse(self)
            self.end_all()
            self.page_end()
        finally:
            self._out = None

    # hooks with no-op defaults; subclasses override what their format needs
    def page_start(self) -> None:
        pass

    def page_end(self) -> None:
        pass

    def start_all(self) -> None:
        pass

    def end_all(self) -> None:
        pass

    def start_children(self, parent_url: str) -> None:
        pass

    def end_children(self, parent_url: str) -> None:
        pass

    @abstractmethod
    def visit(self, url: str, depth: int, title: Optional[str], summary: Optional[str]) -> None:
        """Вывод одного узла дерева."""


class GraphRenderer(Renderer):
    """Renderer for the full link graph rather than the BFS tree."""

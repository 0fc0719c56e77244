# File: sitemapper/report/text_report.py
"""sitemapper.report.text_report: Карта сайта в виде простого текста."""

from __future__ import annotations

from typing import Optional

from sitemapper.report.base import NO_TITLE, TreeRenderer

RULE = "-" * 80


class TextTreeRenderer(TreeRenderer):
    """One line per page: two spaces per level, then ``url::title``."""

    def page_start(self) -> None:
        self.write(f"{self.title}\n{RULE}\n")

    def visit(self, url: str, depth: int, title: Optional[str], summary: Optional[str]) -> None:
        self.write(f"{'  ' * depth}{url}::{title or NO_TITLE}\n")

    def page_end(self) -> None:
        self.write(f"{RULE}\nGenerated {self.generated}\n{self.signature}\n")

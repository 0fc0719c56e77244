# File: sitemapper/report/html_report.py
"""sitemapper.report.html_report: HTML-карта сайта (вложенный список и раскрывающееся дерево) на Jinja2."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from sitemapper.report.base import NO_SUMMARY, NO_TITLE, PROGRAM, TreeRenderer

__all__ = ["HtmlTreeRenderer", "JsTreeRenderer", "DEFAULT_TEMPLATE_DIR"]

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


def _environment(template_dir: Union[Path, str]) -> Environment:
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "xml", "j2"], default_for_string=True),
        keep_trailing_newline=True,
    )


class _JinjaTreeRenderer(TreeRenderer):
    """Общая часть: окружение Jinja2 и контекст шапки/подвала."""

    def __init__(
        self,
        title: str,
        *,
        template_dir: Union[Path, str, None] = None,
        generated_at: Optional[datetime] = None,
    ) -> None:
        super().__init__(title, generated_at=generated_at)
        self.env = _environment(template_dir or DEFAULT_TEMPLATE_DIR)

    def _emit(self, template: str, **context: Any) -> None:
        self.write(self.env.get_template(template).render(**context))

    def _page_context(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "program": PROGRAM,
            "signature": self.signature,
            "generated": self.generated,
        }


class HtmlTreeRenderer(_JinjaTreeRenderer):
    """Вложенный маркированный список ``<ul>``; подсписок лежит внутри ``<li>`` родителя."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        # one flag per open <ul>: is its last <li> still open?
        self._open_items: List[bool] = []

    def _open_list(self) -> None:
        self._open_items.append(False)
        self.write("<ul>\n")

    def _close_list(self) -> None:
        if self._open_items.pop():
            self.write("</li>\n")
        self.write("</ul>\n")

    def page_start(self) -> None:
        self._emit("page_start.html.j2", **self._page_context())

    def start_all(self) -> None:
        self._open_list()

    def start_children(self, parent_url: str) -> None:
        self._open_list()

    def visit(self, url: str, depth: int, title: Optional[str], summary: Optional[str]) -> None:
        if self._open_items[-1]:
            self.write("</li>\n")
        self._emit("node.html.j2", url=url, depth=depth, title=title or NO_TITLE, summary=summary or NO_SUMMARY)
        self._open_items[-1] = True

    def end_children(self, parent_url: str) -> None:
        self._close_list()

    def end_all(self) -> None:
        self._close_list()

    def page_end(self) -> None:
        self._emit("page_end.html.j2", **self._page_context())


class JsTreeRenderer(_JinjaTreeRenderer):
    """
    Раскрывающееся дерево: узлы выводятся как вложенный JS-массив
    (строка узла, за ней массив его детей), который разворачивает
    небольшой скрипт из шаблона ``page_end.js.j2``.
    """

    def page_start(self) -> None:
        self._emit("page_start.js.j2", **self._page_context())

    def start_all(self) -> None:
        self.write("[\n")

    def start_children(self, parent_url: str) -> None:
        self.write("[\n")

    def visit(self, url: str, depth: int, title: Optional[str], summary: Optional[str]) -> None:
        snippet = self.env.get_template("node.js.j2").render(
            url=url, title=title or NO_TITLE, summary=summary or NO_SUMMARY
        )
        self.write(f"{self._js_string(snippet.strip())},\n")

    def end_children(self, parent_url: str) -> None:
        self.write("],\n")

    def end_all(self) -> None:
        self.write("]")

    def page_end(self) -> None:
        self._emit("page_end.js.j2", **self._page_context())

    @staticmethod
    def _js_string(value: str) -> str:
        # safe inside <script>: no "</script>" or "<!--" can leak through
        return json.dumps(value).replace("</", "<\\/").replace("<!--", "<\\!--")

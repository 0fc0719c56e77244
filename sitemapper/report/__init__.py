"""sitemapper.report: Рендереры карты сайта (html, text, js, xml), выбираемые один раз при старте."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Type, Union

from sitemapper.config import OutputFormat
from sitemapper.report.base import GraphRenderer, Renderer, TreeRenderer
from sitemapper.report.html_report import HtmlTreeRenderer, JsTreeRenderer
from sitemapper.report.text_report import TextTreeRenderer
from sitemapper.report.xml_report import XmlGraphRenderer

RENDERERS: Dict[OutputFormat, Type[Renderer]] = {
    OutputFormat.HTML: HtmlTreeRenderer,
    OutputFormat.TEXT: TextTreeRenderer,
    OutputFormat.JS: JsTreeRenderer,
    OutputFormat.XML: XmlGraphRenderer,
}


def get_renderer(
    fmt: Union[OutputFormat, str],
    title: str,
    *,
    template_dir: Union[str, Path, None] = None,
    generated_at: Optional[datetime] = None,
) -> Renderer:
    """Возвращает рендерер для формата *fmt* (ValueError для неизвестного формата)."""
    cls = RENDERERS[OutputFormat(fmt)]
    if issubclass(cls, (HtmlTreeRenderer, JsTreeRenderer)):
        return cls(title, template_dir=template_dir, generated_at=generated_at)
    return cls(title, generated_at=generated_at)


__all__ = [
    "RENDERERS",
    "get_renderer",
    "Renderer",
    "TreeRenderer",
    "GraphRenderer",
    "HtmlTreeRenderer",
    "JsTreeRenderer",
    "TextTreeRenderer",
    "XmlGraphRenderer",
]

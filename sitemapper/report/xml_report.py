# File: sitemapper/report/xml_report.py
"""sitemapper.report.xml_report: XML-граф ссылок между страницами (lxml)."""

from __future__ import annotations

import re
from typing import TextIO

from lxml import etree

from sitemapper.report.base import NO_SUMMARY, NO_TITLE, GraphRenderer
from sitemapper.sitemap import Sitemap

__all__ = ["XmlGraphRenderer"]

# characters XML 1.0 cannot carry even escaped
_XML_ILLEGAL = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


def _clean(value: str) -> str:
    return _XML_ILLEGAL.sub("", value)


class XmlGraphRenderer(GraphRenderer):
    """
    ``<sitemap root=…>`` с одним ``<link from to/>`` на каждое ребро графа
    и одним ``<url id title summary/>`` на каждый найденный URL.

    Пример вывода::

        <sitemap root="http://example.com/" generator="sitemapper version 1.0.0">
          <link from="http://example.com/" to="http://example.com/a"/>
          <url id="http://example.com/" title="Home" summary="..." depth="0" status="fetched"/>
        </sitemap>
    """

    def build(self, sitemap: Sitemap) -> etree._Element:
        root = etree.Element("sitemap", root=_clean(sitemap.root), generator=self.signature)
        root.set("generated", self.generated_at.isoformat(timespec="seconds"))
        if self.title:
            root.set("title", _clean(self.title))
        urls = sitemap.all_urls()
        for source in urls:
            for target in sitemap.links_from(source):
                etree.SubElement(root, "link", {"from": _clean(source), "to": _clean(target)})
        for url in urls:
            record = sitemap.get(url)
            assert record is not None
            node = etree.SubElement(root, "url")
            node.set("id", _clean(url))
            node.set("title", _clean(record.title or NO_TITLE))
            node.set("summary", _clean(record.summary or NO_SUMMARY))
            node.set("depth", str(record.depth))
            node.set("status", record.status.value)
            if record.failure is not None:
                node.set("failure", _clean(str(record.failure)))
        return root

    def render(self, sitemap: Sitemap, out: TextIO) -> None:
        root = self.build(sitemap)
        out.write('<?xml version="1.0" encoding="UTF-8"?>\n')
        out.write(etree.tostring(root, pretty_print=True, encoding="unicode"))

# sitemapper/crawler/link_extractor.py
"""
Title, summary and link extraction for fetched HTML pages.
"""
from __future__ import annotations

import re
from typing import List, Optional, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import Comment, Tag

from sitemapper.crawler.models import ExtractedPage

__all__ = ("extract", "truncate_words", "DEFAULT_SUMMARY_LENGTH")

DEFAULT_SUMMARY_LENGTH = 200

# tag -> attribute holding the outbound URL
_LINK_ATTRS = {"a": "href", "area": "href", "frame": "src", "iframe": "src"}
_INVISIBLE = ("head", "title", "script", "style", "noscript", "template")
_WS_RE = re.compile(r"\s+")


def _collapse(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def truncate_words(text: str, limit: int) -> str:
    """
    Cut *text* to at most *limit* characters, preferring the last word
    boundary.  A single word longer than *limit* is cut hard.
    """
    if len(text) <= limit:
        return text
    if limit <= 0:
        return ""
    if text[limit].isspace():
        return text[:limit].rstrip()
    head = text[:limit]
    cut = head.rfind(" ")
    if cut <= 0:
        return head
    return head[:cut].rstrip()


def extract(
    html: Union[bytes, str],
    base_url: str,
    summary_length: int = DEFAULT_SUMMARY_LENGTH,
    encoding: Optional[str] = None,
) -> ExtractedPage:
    """
    Parse *html* and return its title, summary and raw outbound links.

    Links are returned in document order, unresolved (except that a
    ``<base href>`` replaces *base_url* in the result).  Pure in-page anchors
    (``#top``) are skipped.  html.parser is tolerant: broken markup yields
    whatever could be recovered instead of an error.
    """
    if isinstance(html, bytes):
        soup = BeautifulSoup(html, "html.parser", from_encoding=encoding)
    else:
        soup = BeautifulSoup(html, "html.parser")

    effective_base = base_url
    base_tag = soup.find("base", href=True)
    if isinstance(base_tag, Tag):
        href = base_tag.get("href")
        if isinstance(href, str) and href.strip():
            effective_base = urljoin(base_url, href.strip())

    title: Optional[str] = None
    title_tag = soup.find("title")
    if isinstance(title_tag, Tag):
        title = _collapse(title_tag.get_text()) or None

    links: List[str] = []
    for tag in soup.find_all(list(_LINK_ATTRS)):
        if not isinstance(tag, Tag):
            continue
        value = tag.get(_LINK_ATTRS[tag.name])
        if not isinstance(value, str):
            continue
        value = value.strip()
        if not value or value.startswith("#"):
            continue
        links.append(value)

    summary: Optional[str] = None
    if summary_length > 0:
        for element in soup(list(_INVISIBLE)):
            element.extract()
        for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
            comment.extract()
        body = soup.body if soup.body is not None else soup
        text = _collapse(" ".join(body.stripped_strings))
        summary = truncate_words(text, summary_length) or None

    return ExtractedPage(title=title, summary=summary, links=tuple(links), base_url=effective_base)

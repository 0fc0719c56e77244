# File: sitemapper/errors.py
"""sitemapper.errors: Иерархия исключений Sitemapper.

Page-level fetch problems are *not* exceptions: they are recorded as
:class:`~sitemapper.crawler.models.FetchFailure` on the page record and the
traversal carries on.  Exceptions are reserved for bad links (skipped by the
engine) and for fatal conditions (invalid root URL, bad configuration).
"""
from __future__ import annotations

__all__ = (
    "SitemapperError",
    "UrlError",
    "MalformedURL",
    "UnsupportedScheme",
    "ConfigError",
)


class SitemapperError(Exception):
    """Base class for all Sitemapper errors."""


class UrlError(SitemapperError, ValueError):
    """A URL could not be turned into a normalized key."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{reason}: {url!r}")
        self.url = url
        self.reason = reason


class MalformedURL(UrlError):
    """The URL cannot be parsed or has no host."""


class UnsupportedScheme(UrlError):
    """The URL uses a scheme other than http/https (mailto, javascript, ftp...)."""

    def __init__(self, url: str, scheme: str) -> None:
        super().__init__(url, f"unsupported scheme {scheme!r}")
        self.scheme = scheme


class ConfigError(SitemapperError, ValueError):
    """A configuration file could not be read or has an unknown format."""

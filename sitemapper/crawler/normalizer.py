# sitemapper/crawler/normalizer.py
"""
URL normalization: turns raw hrefs into canonical keys used for deduplication.
"""
from __future__ import annotations

import re
from typing import List, Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

from sitemapper.errors import MalformedURL, UnsupportedScheme

__all__ = ("normalize", "remove_dot_segments", "same_site", "DEFAULT_PORTS")

DEFAULT_PORTS = {"http": 80, "https": 443}

_PCT_RE = re.compile(r"%[0-9a-fA-F]{2}")
_SCHEME_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.\-]*):")


def remove_dot_segments(path: str) -> str:
    """Collapse ``.`` and ``..`` segments (RFC 3986, section 5.2.4)."""
    if "." not in path:
        return path
    output: List[str] = []
    segments = path.split("/")
    for i, segment in enumerate(segments):
        last = i == len(segments) - 1
        if segment == ".":
            if last:
                output.append("")
            continue
        if segment == "..":
            if len(output) > 1:
                output.pop()
            if last:
                output.append("")
            continue
        output.append(segment)
    result = "/".join(output)
    if path.startswith("/") and not result.startswith("/"):
        result = "/" + result
    return result


def _upper_escapes(value: str) -> str:
    return _PCT_RE.sub(lambda m: m.group(0).upper(), value)


def normalize(raw: str, base: Optional[str] = None) -> str:
    """
    Resolve *raw* against *base* and return its canonical form.

    Lower-cases scheme and host, drops default ports and the fragment,
    collapses dot segments, upper-cases percent escapes and drops an empty
    ``?``.  Trailing slashes are kept as given.  Raises
    :class:`UnsupportedScheme` for non-HTTP(S) URLs and :class:`MalformedURL`
    when no usable host/port can be found.
    """
    if raw is None:
        raise MalformedURL("", "empty URL")
    text = raw.strip()

    match = _SCHEME_RE.match(text)
    if match and match.group(1).lower() not in DEFAULT_PORTS:
        raise UnsupportedScheme(text, match.group(1).lower())

    try:
        absolute = urljoin(base, text) if base else text
        parts = urlsplit(absolute)
    except ValueError as exc:
        raise MalformedURL(text, str(exc)) from exc

    scheme = parts.scheme.lower()
    if not scheme:
        raise MalformedURL(text, "relative URL without base")
    if scheme not in DEFAULT_PORTS:
        raise UnsupportedScheme(text, scheme)

    try:
        host = parts.hostname
        port = parts.port
    except ValueError as exc:
        raise MalformedURL(text, str(exc)) from exc
    if not host:
        raise MalformedURL(text, "missing host")

    if ":" in host:
        host = f"[{host}]"
    netloc = host
    if port is not None and port != DEFAULT_PORTS[scheme]:
        netloc = f"{host}:{port}"
    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    path = _upper_escapes(remove_dot_segments(parts.path)) or "/"
    query = _upper_escapes(parts.query)
    return urlunsplit((scheme, netloc, path, query, ""))


def same_site(url: str, root: str) -> bool:
    """
    True when *url* lives on the same host and port as *root*.

    An http <-> https switch on the same host counts as the same site only
    when both sides use their scheme's default port.
    """
    a, b = urlsplit(url), urlsplit(root)
    try:
        port_a = a.port or DEFAULT_PORTS.get(a.scheme)
        port_b = b.port or DEFAULT_PORTS.get(b.scheme)
    except ValueError:
        return False
    if a.hostname != b.hostname:
        return False
    if a.scheme == b.scheme:
        return port_a == port_b
    return port_a == DEFAULT_PORTS.get(a.scheme) and port_b == DEFAULT_PORTS.get(b.scheme)

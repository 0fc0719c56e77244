# sitemapper/crawler/models.py
"""
Data models for the Sitemapper crawler: fetch results, page records,
frontier entries and the tree events consumed by renderers.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol, Tuple, Union

__all__ = (
    "FailureKind",
    "FetchFailure",
    "FetchResult",
    "FetchStatus",
    "ExtractedPage",
    "PageRecord",
    "FrontierEntry",
    "LinkEdge",
    "StartChildren",
    "Visit",
    "EndChildren",
    "TreeEvent",
    "Visitor",
    "dispatch",
)


class FailureKind(str, Enum):
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    NOT_HTML = "not_html"
    DISALLOWED = "disallowed"


@dataclass(frozen=True, slots=True)
class FetchFailure:
    """Why a fetch did not yield an HTML document."""

    kind: FailureKind
    detail: str = ""
    status_code: Optional[int] = None

    @property
    def is_fatal(self) -> bool:
        """False only for NOT_HTML, which is a successful fetch of a leaf node."""
        return self.kind is not FailureKind.NOT_HTML

    @property
    def is_transient(self) -> bool:
        """Whether the traversal engine may retry the request."""
        if self.kind in (FailureKind.NETWORK_ERROR, FailureKind.TIMEOUT):
            return True
        if self.kind is FailureKind.HTTP_STATUS and self.status_code is not None:
            return self.status_code == 429 or 500 <= self.status_code < 600
        return False

    def __str__(self) -> str:
        if self.kind is FailureKind.HTTP_STATUS:
            return f"HTTP {self.status_code}"
        return f"{self.kind.value}: {self.detail}" if self.detail else self.kind.value


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Outcome of one GET request."""

    url: str
    final_url: Optional[str] = None
    status: Optional[int] = None
    content_type: Optional[str] = None
    charset: Optional[str] = None
    body: Optional[bytes] = None
    failure: Optional[FetchFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def is_leaf(self) -> bool:
        return self.failure is not None and self.failure.kind is FailureKind.NOT_HTML


@dataclass(frozen=True, slots=True)
class ExtractedPage:
    """Title, summary and raw outbound links pulled out of an HTML document."""

    title: Optional[str]
    summary: Optional[str]
    links: Tuple[str, ...]
    base_url: str


class FetchStatus(str, Enum):
    PENDING = "pending"
    FETCHED = "fetched"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class PageRecord:
    """Everything known about one normalized URL.

    Created PENDING on first discovery and replaced exactly once by a
    terminal (FETCHED / FAILED) record.
    """

    url: str
    depth: int
    discovered_from: Optional[str] = None
    title: Optional[str] = None
    summary: Optional[str] = None
    outbound_links: Tuple[str, ...] = field(default_factory=tuple)
    status: FetchStatus = FetchStatus.PENDING
    failure: Optional[FetchFailure] = None
    content_type: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not FetchStatus.PENDING


@dataclass(frozen=True, slots=True)
class FrontierEntry:
    url: str
    depth: int
    discovered_from: Optional[str] = None


@dataclass(frozen=True, slots=True)
class LinkEdge:
    source: str
    target: str


# --------------------------------------------------------------------------- #
# Tree events                                                                 #
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class StartChildren:
    parent_url: str


@dataclass(frozen=True, slots=True)
class Visit:
    url: str
    depth: int
    title: Optional[str] = None
    summary: Optional[str] = None


@dataclass(frozen=True, slots=True)
class EndChildren:
    parent_url: str


TreeEvent = Union[StartChildren, Visit, EndChildren]


class Visitor(Protocol):
    def start_children(self, parent_url: str) -> None: ...

    def visit(self, url: str, depth: int, title: Optional[str], summary: Optional[str]) -> None: ...

    def end_children(self, parent_url: str) -> None: ...


def dispatch(event: TreeEvent, visitor: Visitor) -> None:
    """Call the visitor hook matching *event*."""
    if isinstance(event, Visit):
        visitor.visit(event.url, event.depth, event.title, event.summary)
    elif isinstance(event, StartChildren):
        visitor.start_children(event.parent_url)
    elif isinstance(event, EndChildren):
        visitor.end_children(event.parent_url)
    else:
        raise TypeError(f"unknown tree event {event!r}")

"""
Content data model.

Posts are immutable once parsed; the graph built from them is immutable
once frozen, which lets later stages read it from several threads.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

_NON_SLUG_RE = re.compile(r"[^a-z0-9._-]+")
_DASH_RUN_RE = re.compile(r"-{2,}")


def slugify(text: str) -> str:
    """Make a URL-safe slug from arbitrary text.

    Examples:
        "SOLID Design Principles" -> "solid-design-principles"
        "C# / .NET"               -> "c-.net"
    """
    slug = _NON_SLUG_RE.sub("-", text.strip().lower())
    slug = _DASH_RUN_RE.sub("-", slug).strip("-")
    return slug


@dataclass(frozen=True)
class Post:
    """A single content unit."""

    slug: str
    title: str
    published_at: datetime
    path: Path
    body: str = ""
    is_draft: bool = False
    series: str | None = None
    tags: frozenset[str] = frozenset()
    section: str = ""
    description: str | None = None
    params: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    # Number of file lines before the body, for reporting body line numbers
    body_offset: int = 0

    @property
    def url(self) -> str:
        """Site-absolute URL of the rendered page."""
        if self.section:
            return f"/{self.section}/{self.slug}/"
        return f"/{self.slug}/"

    @property
    def output_dir(self) -> str:
        """Output directory relative to the site root (POSIX form)."""
        return f"{self.section}/{self.slug}" if self.section else self.slug

    @property
    def output_path(self) -> str:
        return f"{self.output_dir}/index.html"

    @property
    def sorted_tags(self) -> list[str]:
        # Exact spelling breaks ties between tags differing only by case
        return sorted(self.tags, key=lambda t: (t.lower(), t))


def chronological_key(post: Post) -> tuple[datetime, str]:
    """Sort key for series order: oldest first, slug breaks ties."""
    return (post.published_at, post.slug)


def recent_first(posts) -> list[Post]:
    """Sort posts newest first, slug ascending within the same instant."""
    by_slug = sorted(posts, key=lambda p: p.slug)
    return sorted(by_slug, key=lambda p: p.published_at, reverse=True)


@dataclass(frozen=True)
class SeriesGroup:
    """An ordered sequence of posts sharing a series name."""

    name: str
    members: tuple[Post, ...]

    @property
    def slug(self) -> str:
        return slugify(self.name)

    def __len__(self) -> int:
        return len(self.members)

    def neighbours(self, post: Post) -> tuple[Post | None, Post | None]:
        """Return the (previous, next) posts around post in this series."""
        for i, member in enumerate(self.members):
            if member.slug == post.slug:
                prev_post = self.members[i - 1] if i > 0 else None
                next_post = self.members[i + 1] if i + 1 < len(self.members) else None
                return prev_post, next_post
        return None, None


@dataclass(frozen=True)
class ContentGraph:
    """Everything one build knows about its content."""

    posts: Mapping[str, Post]
    series: Mapping[str, SeriesGroup]
    tags: Mapping[str, tuple[Post, ...]]
    drafts: Mapping[str, Post] = field(default_factory=lambda: MappingProxyType({}))

    def sorted_posts(self) -> list[Post]:
        """Visible posts, most recent first."""
        return recent_first(self.posts.values())

    def series_for(self, post: Post) -> SeriesGroup | None:
        if post.series is None:
            return None
        return self.series.get(post.series)

    def tags_for(self, post: Post) -> list[str]:
        """Tags of post that have a listing in this graph, case-insensitively sorted."""
        return [tag for tag in post.sorted_tags if tag in self.tags]


@dataclass(frozen=True)
class CrossReference:
    """A reference marker found in a post body."""

    source: str
    target: str
    target_slug: str
    anchor: str | None = None
    line: int | None = None


@dataclass(frozen=True)
class ResolvedPost:
    """A post whose reference markers have been replaced by links."""

    post: Post
    body: str
    references: tuple[CrossReference, ...] = ()


class IssueSeverity(Enum):
    """Severity levels for build issues."""

    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class BuildIssue:
    """A non-fatal problem reported at the end of a build."""

    path: Path | None
    message: str
    severity: IssueSeverity = IssueSeverity.WARNING
    field: str | None = None
    target: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "path": str(self.path) if self.path else None,
            "message": self.message,
            "severity": self.severity.value,
            "field": self.field,
            "target": self.target,
        }

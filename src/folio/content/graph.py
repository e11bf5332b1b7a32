"""
Content graph builder.

Aggregates parsed posts into the slug map, series groups and tag index.
Series read front to back (oldest first); tag listings read recent first.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from types import MappingProxyType

from folio.content.models import (
    BuildIssue,
    ContentGraph,
    Post,
    SeriesGroup,
    chronological_key,
    recent_first,
    slugify,
)
from folio.core.errors import DuplicateSlugError

logger = logging.getLogger(__name__)


def build_graph(posts: Iterable[Post], include_drafts: bool = False) -> ContentGraph:
    """Build the immutable content graph for one build.

    Drafts always take part in the duplicate slug check. Unless
    include_drafts is set they are kept out of posts, series and tags and
    are only reachable through graph.drafts.

    Args:
        posts: Parsed posts in any order
        include_drafts: Publish drafts alongside regular posts

    Raises:
        DuplicateSlugError: On the first slug claimed by two files
    """
    by_slug: dict[str, Post] = {}
    hidden: dict[str, Post] = {}
    series_members: dict[str, list[Post]] = defaultdict(list)
    tag_members: dict[str, list[Post]] = defaultdict(list)

    # Path order makes the reported conflict pair independent of input order
    for post in sorted(posts, key=lambda p: str(p.path)):
        existing = by_slug.get(post.slug) or hidden.get(post.slug)
        if existing is not None:
            raise DuplicateSlugError(post.slug, existing.path, post.path)

        if post.is_draft and not include_drafts:
            hidden[post.slug] = post
            continue

        by_slug[post.slug] = post
        if post.series:
            series_members[post.series].append(post)
        for tag in post.tags:
            tag_members[tag].append(post)

    series = {
        name: SeriesGroup(name=name, members=tuple(sorted(members, key=chronological_key)))
        for name, members in sorted(series_members.items())
    }
    tags = {tag: tuple(recent_first(members)) for tag, members in sorted(tag_members.items())}

    logger.info(
        "Content graph: %d posts, %d drafts hidden, %d series, %d tags",
        len(by_slug), len(hidden), len(series), len(tags),
    )

    return ContentGraph(
        posts=MappingProxyType(dict(sorted(by_slug.items()))),
        series=MappingProxyType(series),
        tags=MappingProxyType(tags),
        drafts=MappingProxyType(dict(sorted(hidden.items()))),
    )


def lint_graph(posts: Iterable[Post]) -> list[BuildIssue]:
    """Report suspicious but legal content.

    Checks:
    1. Posts sharing the same (title, series) pair, often a stale copy
    2. Tags that differ only by case
    3. Series or tag names that collide once turned into URL slugs
    """
    posts = sorted(posts, key=lambda p: str(p.path))
    issues: list[BuildIssue] = []

    by_title: dict[tuple[str, str | None], list[Post]] = defaultdict(list)
    for post in posts:
        by_title[(post.title.casefold(), post.series)].append(post)
    for (_title, series), dupes in sorted(by_title.items(), key=lambda kv: (kv[0][0], kv[0][1] or "")):
        if len(dupes) < 2:
            continue
        others = ", ".join(str(p.path) for p in dupes[1:])
        where = f" in series '{series}'" if series else ""
        issues.append(
            BuildIssue(
                path=dupes[0].path,
                message=f"title '{dupes[0].title}'{where} is also used by {others}",
                field="title",
            )
        )

    tag_spellings: dict[str, set[str]] = defaultdict(set)
    series_spellings: dict[str, set[str]] = defaultdict(set)
    for post in posts:
        for tag in post.tags:
            tag_spellings[slugify(tag)].add(tag)
        if post.series:
            series_spellings[slugify(post.series)].add(post.series)

    for key, spellings in sorted(tag_spellings.items()):
        if len(spellings) > 1:
            variants = ", ".join(f"'{s}'" for s in sorted(spellings))
            issues.append(
                BuildIssue(
                    path=None,
                    message=f"tags {variants} share the URL /tags/{key}/",
                    field="tags",
                )
            )
    for key, spellings in sorted(series_spellings.items()):
        if len(spellings) > 1:
            variants = ", ".join(f"'{s}'" for s in sorted(spellings))
            issues.append(
                BuildIssue(
                    path=None,
                    message=f"series {variants} share the URL /series/{key}/",
                    field="series",
                )
            )

    return issues

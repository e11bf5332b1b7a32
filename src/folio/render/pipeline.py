"""
Render pipeline.

Turns reference-resolved posts into output documents: one page per post,
one per series and per tag, the series and tag listings and the home page.
Output depends only on the input content, so two builds of the same tree
produce byte-identical files.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

from folio.content.models import (
    BuildIssue,
    ContentGraph,
    Post,
    ResolvedPost,
    SeriesGroup,
    slugify,
)
from folio.core.config import SiteConfig
from folio.core.errors import ContentErrors, RenderError
from folio.render.markdown import Converter, MarkdownRenderer, convert
from folio.render.templates import TemplateEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutputDocument:
    """A rendered file, addressed by its POSIX path below the output root."""

    path: str
    content: str
    kind: str = "post"
    source: Path | None = None


@dataclass
class RenderResult:
    """Documents produced by one render, sorted by path."""

    documents: list[OutputDocument] = field(default_factory=list)
    issues: list[BuildIssue] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    def by_kind(self, kind: str) -> list[OutputDocument]:
        return [d for d in self.documents if d.kind == kind]


def root_prefix(doc_path: str) -> str:
    """Relative prefix from a document back to the site root."""
    depth = doc_path.count("/")
    return "../" * depth if depth else "./"


def assign_term_paths(names: Iterable[str], prefix: str) -> dict[str, str]:
    """Map term names to unique directory paths under prefix.

    Names whose slugs collide get numeric suffixes in sorted name order,
    e.g. "C" -> "tags/c/", "C#" -> "tags/c-2/".
    """
    paths: dict[str, str] = {}
    taken: set[str] = set()
    for name in sorted(names):
        base = slugify(name) or "term"
        slug = base
        counter = 2
        while slug in taken:
            slug = f"{base}-{counter}"
            counter += 1
        taken.add(slug)
        paths[name] = f"{prefix}/{slug}/"
    return paths


class RenderPipeline:
    """Renders a resolved content graph into output documents."""

    def __init__(
        self,
        site: SiteConfig | None = None,
        templates: TemplateEngine | None = None,
        converter: Converter | None = None,
        strict: bool = False,
        jobs: int = 4,
    ):
        """Initialize pipeline.

        Args:
            site: Site settings exposed to templates
            templates: Template engine (built-in templates if not provided)
            converter: Markdown converter (Python-Markdown if not provided)
            strict: Raise on the first stage with render errors instead of
                skipping the failing posts
            jobs: Worker threads
        """
        self.site = site or SiteConfig()
        self.templates = templates or TemplateEngine()
        self.converter = converter or MarkdownRenderer(self.site.markdown_extensions)
        self.strict = strict
        self.jobs = max(1, jobs)

    # ------------------------------------------------------------------
    # Context helpers
    # ------------------------------------------------------------------

    def _entry(self, post: Post) -> dict[str, Any]:
        return {
            "title": post.title,
            "path": f"{post.output_dir}/",
            "date": post.published_at.strftime("%Y-%m-%d"),
            "datetime": post.published_at.isoformat(),
            "draft": post.is_draft,
        }

    def _page(self, name: str, doc_path: str, source: Path | None = None, **context: Any) -> str:
        context.setdefault("description", None)
        return self.templates.render(
            name,
            path=source,
            site=self.site,
            root=root_prefix(doc_path),
            **context,
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _convert_all(
        self, resolved: Mapping[str, ResolvedPost]
    ) -> tuple[dict[str, str], list[RenderError]]:
        """Convert every post body to HTML on the worker pool."""
        items = [resolved[slug] for slug in sorted(resolved)]

        def attempt(item: ResolvedPost) -> str | RenderError:
            try:
                return convert(self.converter, item.body, item.post.path)
            except RenderError as e:
                return e

        html: dict[str, str] = {}
        errors: list[RenderError] = []
        with ThreadPoolExecutor(max_workers=self.jobs) as pool:
            for item, result in zip(items, pool.map(attempt, items)):
                if isinstance(result, RenderError):
                    errors.append(result)
                else:
                    html[item.post.slug] = result
        return html, errors

    def _post_document(
        self,
        post: Post,
        content: str,
        graph: ContentGraph,
        rendered: set[str],
        series_paths: dict[str, str],
        tag_paths: dict[str, str],
    ) -> OutputDocument:
        series_ctx = None
        group = graph.series_for(post)
        if group is not None:
            visible = SeriesGroup(
                name=group.name,
                members=tuple(m for m in group.members if m.slug in rendered),
            )
            prev_post, next_post = visible.neighbours(post)
            series_ctx = {
                "name": group.name,
                "path": series_paths[group.name],
                "position": [m.slug for m in visible.members].index(post.slug) + 1,
                "total": len(visible),
                "prev": self._entry(prev_post) if prev_post else None,
                "next": self._entry(next_post) if next_post else None,
            }

        tags = [{"name": t, "path": tag_paths[t]} for t in graph.tags_for(post)]
        page = self._page(
            "post.html",
            post.output_path,
            source=post.path,
            post=post,
            content=content,
            series=series_ctx,
            tags=tags,
            description=post.description,
        )
        return OutputDocument(path=post.output_path, content=page, kind="post", source=post.path)

    def _index_documents(
        self,
        graph: ContentGraph,
        rendered: set[str],
        series_paths: dict[str, str],
        tag_paths: dict[str, str],
    ) -> list[OutputDocument]:
        docs: list[OutputDocument] = []

        series_terms = []
        for name, group in graph.series.items():
            members = [m for m in group.members if m.slug in rendered]
            if not members:
                continue
            doc_path = f"{series_paths[name]}index.html"
            docs.append(
                OutputDocument(
                    path=doc_path,
                    kind="series",
                    content=self._page(
                        "list.html",
                        doc_path,
                        heading=name,
                        entries=[self._entry(m) for m in members],
                        ordered=True,
                    ),
                )
            )
            series_terms.append({"name": name, "path": series_paths[name], "count": len(members)})

        tag_terms = []
        for tag, posts in graph.tags.items():
            members = [p for p in posts if p.slug in rendered]
            if not members:
                continue
            doc_path = f"{tag_paths[tag]}index.html"
            docs.append(
                OutputDocument(
                    path=doc_path,
                    kind="tag",
                    content=self._page(
                        "list.html",
                        doc_path,
                        heading=tag,
                        entries=[self._entry(p) for p in members],
                        ordered=False,
                    ),
                )
            )
            tag_terms.append({"name": tag, "path": tag_paths[tag], "count": len(members)})

        for doc_path, heading, terms in (
            ("series/index.html", "Series", series_terms),
            ("tags/index.html", "Tags", tag_terms),
        ):
            docs.append(
                OutputDocument(
                    path=doc_path,
                    kind="terms",
                    content=self._page(
                        "terms.html",
                        doc_path,
                        heading=heading,
                        terms=sorted(terms, key=lambda t: t["name"].lower()),
                    ),
                )
            )

        home = [p for p in graph.sorted_posts() if p.slug in rendered]
        docs.append(
            OutputDocument(
                path="index.html",
                kind="home",
                content=self._page(
                    "list.html",
                    "index.html",
                    heading=self.site.title,
                    entries=[self._entry(p) for p in home],
                    ordered=False,
                ),
            )
        )
        return docs

    def render(self, graph: ContentGraph, resolved: Mapping[str, ResolvedPost]) -> RenderResult:
        """Render every resolved post plus the index pages.

        Args:
            graph: Frozen content graph
            resolved: Reference-resolved posts keyed by slug

        Returns:
            RenderResult with documents sorted by path

        Raises:
            ContentErrors: Render errors in strict mode
            RenderError: If two documents claim the same output path
        """
        result = RenderResult()
        html, errors = self._convert_all(resolved)
        if errors and self.strict:
            raise ContentErrors(sorted(errors, key=lambda e: str(e.path)))

        series_paths = assign_term_paths(graph.series, "series")
        tag_paths = assign_term_paths(graph.tags, "tags")

        # Series navigation depends on which posts render, so pages are
        # rendered again without the failures until no new post fails
        candidates = set(html)
        by_slug: dict[str, OutputDocument] = {}
        while candidates:
            by_slug = {}
            failed: list[RenderError] = []
            for slug in sorted(candidates):
                try:
                    by_slug[slug] = self._post_document(
                        resolved[slug].post, html[slug], graph, candidates, series_paths, tag_paths
                    )
                except RenderError as e:
                    failed.append(e)
            if not failed:
                break
            errors.extend(failed)
            if self.strict:
                break
            candidates = set(by_slug)

        if errors:
            errors.sort(key=lambda e: str(e.path))
            if self.strict:
                raise ContentErrors(errors)
            for error in errors:
                logger.warning("Skipping %s: %s", error.path, error.message)
                result.issues.append(BuildIssue(path=error.path, message=f"skipped: {error.message}"))
            result.skipped = sorted(set(resolved) - set(by_slug))

        rendered = set(by_slug)
        post_docs = [by_slug[slug] for slug in sorted(by_slug)]
        documents = post_docs + self._index_documents(graph, rendered, series_paths, tag_paths)

        seen: dict[PurePosixPath, OutputDocument] = {}
        for doc in documents:
            key = PurePosixPath(doc.path)
            if key.is_absolute() or ".." in key.parts:
                raise RenderError(doc.source, f"output path '{doc.path}' escapes the output directory")
            if key in seen:
                other = seen[key]
                raise RenderError(
                    doc.source or other.source,
                    f"output path '{key}' is produced by both a {other.kind} page and a {doc.kind} page",
                )
            seen[key] = doc

        result.documents = sorted(documents, key=lambda d: d.path)
        logger.info(
            "Rendered %d documents (%d posts, %d skipped)",
            len(result.documents), len(post_docs), len(result.skipped),
        )
        return result

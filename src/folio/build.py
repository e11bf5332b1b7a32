"""
Site build orchestration.

Runs the stages in order, each over the whole collection:

    parse -> graph -> resolve references -> render -> publish

The content graph is frozen after the graph stage; resolution and
rendering only read it. Output is written to a staging directory and
swapped into place only when every stage succeeded.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path

from folio.content.graph import build_graph, lint_graph
from folio.content.loader import ContentLoader
from folio.content.models import BuildIssue, ContentGraph, Post
from folio.content.references import (
    DraftReferencePolicy,
    ReferencePolicy,
    ReferenceResolver,
    ResolutionResult,
)
from folio.core.config import SiteConfig, SitePaths
from folio.core.crypto import compute_directory_hash
from folio.core.errors import BuildCancelled
from folio.core.publish import publish, staging_directory, write_documents
from folio.render.markdown import Converter
from folio.render.pipeline import RenderPipeline, RenderResult
from folio.render.templates import TemplateEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildOptions:
    """Settings for one build invocation."""

    content_dir: Path
    out_dir: Path
    include_drafts: bool = False
    strict: bool = False
    draft_references: DraftReferencePolicy = DraftReferencePolicy.WARN
    jobs: int = 4
    templates_dir: Path | None = None
    site: SiteConfig = field(default_factory=SiteConfig)

    @classmethod
    def from_paths(
        cls,
        paths: SitePaths,
        include_drafts: bool = False,
        strict: bool = False,
        out_dir: Path | None = None,
        jobs: int | None = None,
    ) -> BuildOptions:
        """Build options from resolved site paths plus CLI overrides."""
        return cls(
            content_dir=paths.content,
            out_dir=Path(out_dir) if out_dir else paths.output,
            include_drafts=include_drafts,
            strict=strict,
            draft_references=DraftReferencePolicy(paths.config.draft_references),
            jobs=jobs or paths.config.jobs,
            templates_dir=paths.templates,
            site=paths.config,
        )

    @property
    def reference_policy(self) -> ReferencePolicy:
        return ReferencePolicy.STRICT if self.strict else ReferencePolicy.WARN


@dataclass
class BuildReport:
    """Summary of a finished build."""

    posts: int = 0
    drafts_hidden: int = 0
    pages: int = 0
    series: int = 0
    tags: int = 0
    skipped: list[str] = field(default_factory=list)
    warnings: list[BuildIssue] = field(default_factory=list)
    digest: str | None = None
    out_dir: Path | None = None
    elapsed: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "posts": self.posts,
            "drafts_hidden": self.drafts_hidden,
            "pages": self.pages,
            "series": self.series,
            "tags": self.tags,
            "skipped": self.skipped,
            "warnings": [w.to_dict() for w in self.warnings],
            "digest": self.digest,
            "out_dir": str(self.out_dir) if self.out_dir else None,
        }


@dataclass
class CheckResult:
    """Everything a build would know, without writing output."""

    posts: list[Post]
    graph: ContentGraph
    resolution: ResolutionResult
    warnings: list[BuildIssue] = field(default_factory=list)


class SiteBuilder:
    """Runs a whole-site build."""

    def __init__(self, options: BuildOptions, converter: Converter | None = None):
        """Initialize builder.

        Args:
            options: Build settings
            converter: Markdown converter override (Python-Markdown if not provided)
        """
        self.options = options
        self.converter = converter

    @staticmethod
    def _checkpoint(cancel: threading.Event | None, stage: str) -> None:
        if cancel is not None and cancel.is_set():
            raise BuildCancelled(f"Build cancelled before {stage}")

    def load(self) -> list[Post]:
        """Parse every content file (collecting all parse errors)."""
        return ContentLoader(self.options.content_dir, jobs=self.options.jobs).load()

    def check(self, cancel: threading.Event | None = None) -> CheckResult:
        """Parse, build the graph, lint and resolve references.

        Raises:
            ContentErrors: Parse, validation or (strict) reference errors
            DuplicateSlugError: If two files claim the same slug
            BuildCancelled: If cancel is set between stages
        """
        posts = self.load()
        self._checkpoint(cancel, "building the content graph")
        graph = build_graph(posts, include_drafts=self.options.include_drafts)
        warnings = lint_graph(posts)

        self._checkpoint(cancel, "resolving references")
        resolution = ReferenceResolver(
            graph,
            policy=self.options.reference_policy,
            draft_policy=self.options.draft_references,
            jobs=self.options.jobs,
        ).resolve_all()
        warnings.extend(resolution.issues)

        return CheckResult(posts=posts, graph=graph, resolution=resolution, warnings=warnings)

    def render(self, checked: CheckResult) -> RenderResult:
        pipeline = RenderPipeline(
            site=self.options.site,
            templates=TemplateEngine(self.options.templates_dir),
            converter=self.converter,
            strict=self.options.strict,
            jobs=self.options.jobs,
        )
        return pipeline.render(checked.graph, checked.resolution.posts)

    def build(self, cancel: threading.Event | None = None) -> BuildReport:
        """Run the full build and publish the output directory.

        Raises:
            ContentErrors: Collected content errors (see check)
            DuplicateSlugError: If two files claim the same slug
            BuildCancelled: If cancel is set between stages
        """
        started = time.monotonic()
        checked = self.check(cancel)

        self._checkpoint(cancel, "rendering")
        rendered = self.render(checked)

        out_dir = Path(self.options.out_dir)
        with staging_directory(out_dir) as staging:
            pages = write_documents(rendered.documents, staging)
            digest = compute_directory_hash(staging)
            self._checkpoint(cancel, "publishing")
            publish(staging, out_dir)

        report = BuildReport(
            posts=len(checked.graph.posts) - len(rendered.skipped),
            drafts_hidden=len(checked.graph.drafts),
            pages=pages,
            series=len(checked.graph.series),
            tags=len(checked.graph.tags),
            skipped=rendered.skipped,
            warnings=checked.warnings + rendered.issues,
            digest=digest,
            out_dir=out_dir,
            elapsed=time.monotonic() - started,
        )
        logger.info("Built %d pages into %s (%s)", pages, out_dir, digest)
        return report

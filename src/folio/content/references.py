"""
Cross-reference resolution.

Recognises Hugo-style reference markers in post bodies:

    {{< ref "post/other-post.md" >}}
    {{< relref "other-post#section" >}}
    {{% ref "other-post" %}}

and rewrites each into a URL relative to the referring page. Hugo's
escaped form {{</* ref "x" */>}} is emitted literally. Other shortcodes are
left untouched.
"""

from __future__ import annotations

import logging
import posixpath
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum

from folio.content.models import (
    BuildIssue,
    ContentGraph,
    CrossReference,
    Post,
    ResolvedPost,
    slugify,
)
from folio.core.errors import BrokenReferenceError, ContentErrors

logger = logging.getLogger(__name__)

MARKER_RE = re.compile(r"\{\{(?P<open>[<%])(?P<inner>[^\n]*?)(?P<close>[>%])\}\}")
REF_ARGS_RE = re.compile(r"^\s*(?P<name>ref|relref)\s+(?P<quote>[\"'])(?P<target>.*?)(?P=quote)\s*$")
ESCAPED_RE = re.compile(r"^/\*(?P<inner>.*)\*/$", re.DOTALL)

INERT_LINK = "#"


class ReferencePolicy(Enum):
    """What a reference that cannot be resolved does to the build."""

    STRICT = "strict"  # collected and raised as BrokenReferenceError
    WARN = "warn"  # reported, marker becomes an inert link


class DraftReferencePolicy(Enum):
    """How a published post referencing a draft is treated."""

    WARN = "warn"
    ERROR = "error"


@dataclass(frozen=True)
class Literal:
    """Body text passed through unchanged."""

    text: str


@dataclass(frozen=True)
class Reference:
    """A reference marker in a body."""

    name: str
    target: str
    raw: str
    line: int


Segment = Literal | Reference


def tokenize(body: str, first_line: int = 1) -> list[Segment]:
    """Split a body into literal text and reference markers.

    Args:
        body: Markdown text
        first_line: File line number of the first body line

    Returns:
        Segments in body order; adjacent literals are merged
    """
    segments: list[Segment] = []
    buffer: list[str] = []
    pos = 0

    for match in MARKER_RE.finditer(body):
        buffer.append(body[pos : match.start()])
        pos = match.end()
        opening, inner, closing = match.group("open"), match.group("inner"), match.group("close")

        paired = (opening == "<" and closing == ">") or (opening == "%" and closing == "%")
        escaped = ESCAPED_RE.match(inner.strip()) if paired else None
        if escaped:
            buffer.append(f"{{{{{opening}{escaped.group('inner')}{closing}}}}}")
            continue

        args = REF_ARGS_RE.match(inner) if paired else None
        if args is None:
            buffer.append(match.group(0))
            continue

        if buffer:
            segments.append(Literal("".join(buffer)))
            buffer = []
        segments.append(
            Reference(
                name=args.group("name"),
                target=args.group("target"),
                raw=match.group(0),
                line=first_line + body.count("\n", 0, match.start()),
            )
        )

    buffer.append(body[pos:])
    text = "".join(buffer)
    if text:
        segments.append(Literal(text))
    return segments


def parse_target(target: str) -> tuple[str | None, str, str | None]:
    """Split a marker argument into (section, slug, anchor).

    Examples:
        "post/other.md"          -> ("post", "other", None)
        "/post/other/index.md"   -> ("post", "other", None)
        "other#usage"            -> (None, "other", "usage")
        "#usage"                 -> (None, "", "usage")
    """
    path, _, anchor = target.strip().partition("#")
    path = path.strip().strip("/")
    if path.endswith(".md"):
        path = path[:-3]
    parts = [p for p in path.split("/") if p and p != "."]
    if parts and parts[-1] in ("index", "_index"):
        parts = parts[:-1]
    if not parts:
        return None, "", anchor or None
    section = slugify(parts[0]) if len(parts) > 1 else None
    return section, slugify(parts[-1]), anchor or None


def relative_url(source: Post, target: Post, anchor: str | None = None) -> str:
    """URL of target's page relative to source's page directory."""
    rel = posixpath.relpath(target.output_dir, source.output_dir)
    url = "./" if rel == "." else f"{rel}/"
    if anchor:
        url += f"#{anchor}"
    return url


@dataclass
class ResolutionResult:
    """Outcome of resolving every visible post."""

    posts: dict[str, ResolvedPost] = field(default_factory=dict)
    issues: list[BuildIssue] = field(default_factory=list)


@dataclass(frozen=True)
class _Target:
    post: Post | None = None
    anchor: str | None = None
    problem: str | None = None
    draft: bool = False


class ReferenceResolver:
    """Rewrites reference markers using a frozen content graph."""

    def __init__(
        self,
        graph: ContentGraph,
        policy: ReferencePolicy = ReferencePolicy.STRICT,
        draft_policy: DraftReferencePolicy = DraftReferencePolicy.WARN,
        jobs: int = 4,
    ):
        self.graph = graph
        self.policy = policy
        self.draft_policy = draft_policy
        self.jobs = max(1, jobs)

    def _locate(self, source: Post, ref: Reference) -> _Target:
        """Find the post a marker points at."""
        section, slug, anchor = parse_target(ref.target)
        if not slug:
            if anchor:
                return _Target(post=source, anchor=anchor)
            return _Target(problem="empty reference")

        target = self.graph.posts.get(slug)
        if target is None:
            if slug in self.graph.drafts:
                return _Target(anchor=anchor, problem="target is a draft and is not built", draft=True)
            return _Target(anchor=anchor, problem="no post with this slug")
        if section is not None and section != target.section:
            where = f"'{target.section}'" if target.section else "the site root"
            return _Target(anchor=anchor, problem=f"post '{slug}' is in {where}, not '{section}'")
        # Drafts may link to each other freely
        draft = target.is_draft and not source.is_draft
        return _Target(post=target, anchor=anchor, draft=draft)

    def resolve_post(
        self, post: Post
    ) -> tuple[ResolvedPost, list[BrokenReferenceError], list[BuildIssue]]:
        """Resolve every marker in one post body."""
        broken: list[BrokenReferenceError] = []
        issues: list[BuildIssue] = []
        references: list[CrossReference] = []
        out: list[str] = []

        for segment in tokenize(post.body, first_line=post.body_offset + 1):
            if isinstance(segment, Literal):
                out.append(segment.text)
                continue

            found = self._locate(post, segment)
            problem = found.problem

            if found.draft:
                if self.draft_policy is DraftReferencePolicy.ERROR:
                    problem = problem or "target is a draft"
                else:
                    issues.append(
                        BuildIssue(
                            path=post.path,
                            message=f"line {segment.line}: reference '{segment.target}' points at a draft",
                            target=segment.target,
                        )
                    )
                    if found.post is None:
                        out.append(INERT_LINK)
                        continue

            if problem is not None or found.post is None:
                error = BrokenReferenceError(
                    post.path, segment.target, problem or "unresolved", line=segment.line
                )
                if self.policy is ReferencePolicy.STRICT:
                    broken.append(error)
                else:
                    issues.append(
                        BuildIssue(
                            path=post.path,
                            message=f"line {segment.line}: {error.message}",
                            target=segment.target,
                        )
                    )
                out.append(INERT_LINK)
                continue

            references.append(
                CrossReference(
                    source=post.slug,
                    target=segment.target,
                    target_slug=found.post.slug,
                    anchor=found.anchor,
                    line=segment.line,
                )
            )
            out.append(relative_url(post, found.post, found.anchor))

        resolved = ResolvedPost(post=post, body="".join(out), references=tuple(references))
        return resolved, broken, issues

    def resolve_all(self) -> ResolutionResult:
        """Resolve every visible post on a worker pool.

        Raises:
            ContentErrors: With every BrokenReferenceError, in strict mode
        """
        posts = list(self.graph.posts.values())
        result = ResolutionResult()
        broken: list[BrokenReferenceError] = []

        with ThreadPoolExecutor(max_workers=self.jobs) as pool:
            for resolved, post_broken, post_issues in pool.map(self.resolve_post, posts):
                result.posts[resolved.post.slug] = resolved
                broken.extend(post_broken)
                result.issues.extend(post_issues)

        if broken:
            raise ContentErrors(broken)

        logger.info(
            "Resolved %d references across %d posts",
            sum(len(r.references) for r in result.posts.values()),
            len(result.posts),
        )
        return result

"""
Content handling for folio sites.

Provides tools for:
- Parsing front matter into posts
- Loading a content tree in parallel
- Building the content graph (slugs, series, tags)
- Resolving cross-references between posts
"""

from folio.content.frontmatter import parse_post, split_front_matter
from folio.content.graph import build_graph, lint_graph
from folio.content.loader import ContentLoader
from folio.content.models import (
    BuildIssue,
    ContentGraph,
    CrossReference,
    Post,
    ResolvedPost,
    SeriesGroup,
)
from folio.content.references import (
    DraftReferencePolicy,
    ReferencePolicy,
    ReferenceResolver,
)

__all__ = [
    "parse_post",
    "split_front_matter",
    "build_graph",
    "lint_graph",
    "ContentLoader",
    "BuildIssue",
    "ContentGraph",
    "CrossReference",
    "Post",
    "ResolvedPost",
    "SeriesGroup",
    "DraftReferencePolicy",
    "ReferencePolicy",
    "ReferenceResolver",
]

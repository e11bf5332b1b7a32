"""
Front matter parsing.

Splits a content file into its metadata block and Markdown body and turns
the metadata into a validated Post. TOML (+++) and YAML (---) blocks are
recognised through python-frontmatter's format handlers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Any

import frontmatter
import yaml
from frontmatter.default_handlers import TOMLHandler, YAMLHandler

from folio.content.models import Post, slugify
from folio.core.errors import ParseError, ValidationError

HANDLERS = [TOMLHandler(), YAMLHandler()]

BUNDLE_INDEX_NAMES = ("index.md", "_index.md")

# Front matter keys mapped onto Post fields; everything else lands in params
KNOWN_KEYS = frozenset({"title", "date", "draft", "slug", "series", "tags", "description"})


@dataclass(frozen=True)
class FrontMatterBlock:
    """The split parts of a content file."""

    metadata: dict[str, Any]
    body: str
    body_offset: int
    format: str


def _decode(raw: bytes | str, path: Path) -> str:
    if isinstance(raw, bytes):
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(path, f"file is not valid UTF-8 ({e.reason})") from e
    else:
        text = raw
    if text.startswith("\ufeff"):
        text = text[1:]
    return text


def _error_line(exc: Exception) -> int | None:
    """Line number (1-based, within the metadata block) of a decode error."""
    lineno = getattr(exc, "lineno", None)
    if isinstance(lineno, int):
        return lineno
    mark = getattr(exc, "problem_mark", None)
    if mark is not None:
        return mark.line + 1
    return None


def split_front_matter(raw: bytes | str, path: Path) -> FrontMatterBlock:
    """Split raw file content into metadata and body.

    Args:
        raw: File content
        path: File path, for error messages

    Returns:
        FrontMatterBlock with the parsed metadata mapping

    Raises:
        ParseError: If the block is missing, unterminated or malformed
    """
    path = Path(path)
    text = _decode(raw, path)
    lines = text.splitlines(keepends=True)
    if not lines:
        raise ParseError(path, "empty file, expected a front matter block", line=1)

    handler = frontmatter.detect_format(lines[0], HANDLERS)
    if handler is None:
        raise ParseError(
            path, "file does not start with a '+++' or '---' front matter delimiter", line=1
        )

    closing = None
    for index in range(1, len(lines)):
        if handler.FM_BOUNDARY.match(lines[index]):
            closing = index
            break
    if closing is None:
        raise ParseError(
            path,
            f"unterminated front matter: no closing '{handler.END_DELIMITER}'",
            line=1,
        )

    fm_text = "".join(lines[1:closing])
    fmt = "toml" if isinstance(handler, TOMLHandler) else "yaml"
    try:
        metadata = handler.load(fm_text)
    except (ValueError, yaml.YAMLError) as e:
        line = _error_line(e)
        raise ParseError(
            path,
            f"invalid {fmt.upper()} front matter: {e}",
            line=line + 1 if line is not None else None,
        ) from e

    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise ParseError(path, f"{fmt.upper()} front matter must be a table of key/value pairs", line=2)

    return FrontMatterBlock(
        metadata=dict(metadata),
        body="".join(lines[closing + 1 :]),
        body_offset=closing + 1,
        format=fmt,
    )


def derive_slug(path: Path, content_root: Path | None = None) -> tuple[str, str]:
    """Derive (slug, section) from a content file path.

    Handles both:
    - Single files: section/slug.md
    - Bundles: section/slug/index.md

    The section is the first directory below the content root.
    """
    path = Path(path)
    rel = path
    if content_root is not None:
        try:
            rel = path.relative_to(content_root)
        except ValueError:
            rel = Path(path.name)

    if rel.name in BUNDLE_INDEX_NAMES:
        stem = rel.parent.name
        dirs = rel.parts[:-2]
    else:
        stem = rel.stem
        dirs = rel.parts[:-1]

    section = slugify(dirs[0]) if dirs else ""
    return slugify(stem), section


def coerce_datetime(value: Any, path: Path, field: str = "date") -> datetime:
    """Normalise a front matter date to an aware UTC datetime.

    Naive values are taken to be UTC.

    Raises:
        ValidationError: If the value is not a date or an ISO-8601 string
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.strip())
        except ValueError as e:
            raise ValidationError(
                path, field, f"invalid timestamp {value!r}, expected ISO-8601 (YYYY-MM-DD)"
            ) from e
    else:
        raise ValidationError(
            path, field, f"expected a date, got {type(value).__name__}"
        )

    if dt.tzinfo is None or dt.utcoffset() is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _string_list(value: Any, path: Path, field: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(path, field, "expected a string or a list of strings")
    return [v.strip() for v in value if v.strip()]


def _optional_string(value: Any, path: Path, field: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(path, field, f"expected a string, got {type(value).__name__}")
    return value.strip() or None


def build_post(block: FrontMatterBlock, path: Path, content_root: Path | None = None) -> Post:
    """Validate parsed metadata and assemble a Post.

    Raises:
        ValidationError: If a required field is missing or a field has the wrong type
    """
    path = Path(path)
    meta = block.metadata

    if "title" not in meta:
        raise ValidationError(path, "title", "required field is missing")
    title = meta["title"]
    if not isinstance(title, str) or not title.strip():
        raise ValidationError(path, "title", "must be a non-empty string")

    if "date" not in meta:
        raise ValidationError(path, "date", "required field is missing")
    published_at = coerce_datetime(meta["date"], path)

    draft = meta.get("draft", False)
    if not isinstance(draft, bool):
        raise ValidationError(path, "draft", "must be true or false")

    slug, section = derive_slug(path, content_root)
    explicit = _optional_string(meta.get("slug"), path, "slug")
    if explicit is not None:
        slug = slugify(explicit)
    if not slug:
        raise ValidationError(path, "slug", "cannot derive a URL-safe slug")
    if slug.startswith("."):
        # "." and ".." would address the section or site root
        raise ValidationError(path, "slug", f"slug {slug!r} must not start with '.'")

    # Hugo writes series as a list taxonomy; one series per post is supported
    series_names = _string_list(meta.get("series"), path, "series")
    if len(series_names) > 1:
        raise ValidationError(
            path, "series", f"a post can belong to one series, got {len(series_names)}"
        )

    params = {k: v for k, v in meta.items() if k not in KNOWN_KEYS}

    return Post(
        slug=slug,
        title=title.strip(),
        published_at=published_at,
        path=path,
        body=block.body,
        is_draft=draft,
        series=series_names[0] if series_names else None,
        tags=frozenset(_string_list(meta.get("tags"), path, "tags")),
        section=section,
        description=_optional_string(meta.get("description"), path, "description"),
        params=MappingProxyType(params),
        body_offset=block.body_offset,
    )


def parse_post(raw: bytes | str, path: Path, content_root: Path | None = None) -> Post:
    """Parse one content file into a Post.

    Args:
        raw: File content (bytes are decoded as UTF-8)
        path: File path; determines the default slug and section
        content_root: Root of the content tree the path is relative to

    Raises:
        ParseError: Malformed front matter block
        ValidationError: Missing or invalid field
    """
    block = split_front_matter(raw, path)
    return build_post(block, path, content_root)

"""
Content tree loader.

Discovers content files and parses them on a worker pool. Parse and
validation failures are collected across the whole tree so one run
reports every malformed file.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from folio.content.frontmatter import parse_post
from folio.content.models import Post
from folio.core.errors import ConfigError, ContentError, ContentErrors, ParseError

logger = logging.getLogger(__name__)


class ContentLoader:
    """Loads every post below a content directory."""

    def __init__(self, content_dir: Path, jobs: int = 4):
        """Initialize loader.

        Args:
            content_dir: Root of the content tree
            jobs: Worker threads used for parsing
        """
        self.content_dir = Path(content_dir)
        self.jobs = max(1, jobs)

    def discover(self) -> list[Path]:
        """List content files in a stable order.

        Skips:
        - hidden files and files inside hidden directories
        - symlinks, to prevent traversal outside the content tree
        - section list pages (_index.md directly inside a section or the root)
        """
        if not self.content_dir.is_dir():
            raise ConfigError(f"Content directory not found: {self.content_dir}")

        found = []
        for path in self.content_dir.rglob("*.md"):
            rel = path.relative_to(self.content_dir)
            if any(part.startswith(".") for part in rel.parts):
                continue
            if path.is_symlink() or path.is_dir():
                continue
            if path.name == "_index.md" and len(rel.parts) <= 2:
                continue
            found.append(path)

        return sorted(found, key=lambda p: p.relative_to(self.content_dir).as_posix())

    def _load_one(self, path: Path) -> Post:
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise ParseError(path, f"cannot read file: {e.strerror or e}") from e
        return parse_post(raw, path, self.content_dir)

    def iter_results(self) -> Iterator[tuple[Path, Post | ContentError]]:
        """Parse every file, yielding (path, post or error) in path order."""
        paths = self.discover()
        logger.info("Parsing %d content files with %d workers", len(paths), self.jobs)

        def attempt(path: Path) -> Post | ContentError:
            try:
                return self._load_one(path)
            except ContentError as e:
                return e

        with ThreadPoolExecutor(max_workers=self.jobs) as pool:
            yield from zip(paths, pool.map(attempt, paths))

    def load(self) -> list[Post]:
        """Parse the whole tree.

        Returns:
            Posts sorted by source path

        Raises:
            ContentErrors: With every ParseError and ValidationError found
        """
        posts: list[Post] = []
        errors: list[ContentError] = []
        for path, result in self.iter_results():
            if isinstance(result, ContentError):
                logger.debug("Failed to parse %s: %s", path, result.message)
                errors.append(result)
            else:
                posts.append(result)

        if errors:
            raise ContentErrors(errors)
        return posts

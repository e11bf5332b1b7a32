"""
Error taxonomy for site builds.

Content errors carry the file path (and field, line or target where known)
so a report can point the author at the exact problem. Stage-local errors
are collected into a ContentErrors aggregate; DuplicateSlugError is raised
on its own as soon as it is found.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

# Process exit codes used by the CLI (2 is left to click usage errors)
EXIT_FAILURE = 1
EXIT_PARSE = 3
EXIT_DUPLICATE_SLUG = 4
EXIT_BROKEN_REFERENCE = 5
EXIT_RENDER = 6


class FolioError(Exception):
    """Base exception for all folio errors."""

    exit_code = EXIT_FAILURE

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigError(FolioError):
    """Invalid or unreadable site configuration."""


class BuildCancelled(FolioError):
    """The build was cancelled between stages."""


class ContentError(FolioError):
    """A problem attributable to one content file."""

    kind = "content"

    def __init__(self, path: Path | str | None, message: str) -> None:
        self.path = Path(path) if path is not None else None
        super().__init__(message)

    def __str__(self) -> str:
        if self.path is None:
            return self.message
        return f"{self.path}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "kind": self.kind,
            "path": str(self.path) if self.path else None,
            "message": self.message,
        }


class ParseError(ContentError):
    """Malformed front-matter block."""

    kind = "parse"
    exit_code = EXIT_PARSE

    def __init__(self, path: Path | str | None, message: str, line: int | None = None):
        super().__init__(path, message)
        self.line = line

    def __str__(self) -> str:
        if self.line is None:
            return super().__str__()
        return f"{self.path}:{self.line}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["line"] = self.line
        return data


class ValidationError(ContentError):
    """Missing or invalid front-matter field."""

    kind = "validation"
    exit_code = EXIT_PARSE

    def __init__(self, path: Path | str | None, field: str, message: str):
        super().__init__(path, message)
        self.field = field

    def __str__(self) -> str:
        return f"{self.path}: field '{self.field}': {self.message}"

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["field"] = self.field
        return data


class DuplicateSlugError(ContentError):
    """Two content files resolve to the same slug."""

    kind = "duplicate_slug"
    exit_code = EXIT_DUPLICATE_SLUG

    def __init__(self, slug: str, first: Path, second: Path):
        super().__init__(
            second,
            f"slug '{slug}' is already used by {first}",
        )
        self.slug = slug
        self.first = Path(first)
        self.second = Path(second)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["slug"] = self.slug
        data["conflicts_with"] = str(self.first)
        return data


class BrokenReferenceError(ContentError):
    """A reference marker points at a slug that cannot be linked."""

    kind = "broken_reference"
    exit_code = EXIT_BROKEN_REFERENCE

    def __init__(
        self,
        path: Path | str | None,
        target: str,
        reason: str = "no post with this slug",
        line: int | None = None,
    ):
        super().__init__(path, f"cannot resolve reference '{target}': {reason}")
        self.target = target
        self.line = line

    def __str__(self) -> str:
        if self.line is None:
            return super().__str__()
        return f"{self.path}:{self.line}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["target"] = self.target
        data["line"] = self.line
        return data


class RenderError(ContentError):
    """A post could not be converted or templated."""

    kind = "render"
    exit_code = EXIT_RENDER


class ContentErrors(FolioError):
    """Every content error collected during one stage."""

    def __init__(self, errors: Iterable[ContentError]):
        self.errors = list(errors)
        if not self.errors:
            raise ValueError("ContentErrors needs at least one error")
        count = len(self.errors)
        noun = "error" if count == 1 else "errors"
        super().__init__(f"{count} content {noun}")
        self.exit_code = self.errors[0].exit_code

    def __iter__(self):
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    def to_list(self) -> list[dict[str, Any]]:
        """Convert every collected error for JSON output."""
        return [e.to_dict() for e in self.errors]

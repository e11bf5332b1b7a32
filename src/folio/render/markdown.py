"""
Markdown to HTML conversion.

Any callable taking Markdown text and returning HTML can stand in for the
default Python-Markdown converter.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

import markdown

from folio.core.config import DEFAULT_MARKDOWN_EXTENSIONS
from folio.core.errors import ConfigError, RenderError

logger = logging.getLogger(__name__)


@runtime_checkable
class Converter(Protocol):
    """Pure function: Markdown text in, HTML text out."""

    def __call__(self, text: str) -> str: ...


class MarkdownRenderer:
    """Python-Markdown with a fixed extension list."""

    def __init__(self, extensions: Sequence[str] = DEFAULT_MARKDOWN_EXTENSIONS):
        """Initialize renderer.

        Args:
            extensions: Python-Markdown extension names

        Raises:
            ConfigError: If an extension cannot be loaded
        """
        self.extensions = list(extensions)
        try:
            markdown.Markdown(extensions=self.extensions)
        except (ImportError, AttributeError, ValueError) as e:
            raise ConfigError(f"Cannot load Markdown extensions {self.extensions}: {e}") from e

    def __call__(self, text: str) -> str:
        # A fresh Markdown instance per call; instances keep state and are
        # not safe to share between threads
        return markdown.Markdown(extensions=self.extensions, output_format="html").convert(text)


def convert(converter: Converter, text: str, path: Path | None = None) -> str:
    """Run a converter, wrapping any failure in RenderError."""
    try:
        html = converter(text)
    except RenderError:
        raise
    except Exception as e:
        logger.debug("Markdown conversion failed for %s", path, exc_info=True)
        raise RenderError(path, f"cannot convert Markdown: {e}") from e
    if not isinstance(html, str):
        raise RenderError(path, f"converter returned {type(html).__name__}, expected str")
    return html

"""Core utilities for folio."""

from folio.core.config import SiteConfig, SitePaths, get_paths, get_site_root
from folio.core.crypto import compute_directory_hash
from folio.core.errors import (
    BrokenReferenceError,
    BuildCancelled,
    ConfigError,
    ContentError,
    ContentErrors,
    DuplicateSlugError,
    FolioError,
    ParseError,
    RenderError,
    ValidationError,
)
from folio.core.publish import publish, staging_directory, write_documents

__all__ = [
    # Config
    "SiteConfig",
    "SitePaths",
    "get_paths",
    "get_site_root",
    # Crypto
    "compute_directory_hash",
    # Errors
    "FolioError",
    "ConfigError",
    "BuildCancelled",
    "ContentError",
    "ContentErrors",
    "ParseError",
    "ValidationError",
    "DuplicateSlugError",
    "BrokenReferenceError",
    "RenderError",
    # Publish
    "staging_directory",
    "write_documents",
    "publish",
]

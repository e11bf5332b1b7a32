"""
Configuration and path management.

Provides site root detection, the folio.yaml site configuration and the
standard paths derived from it.

Resolution order for site root:
  1. FOLIO_SITE_ROOT environment variable (highest priority)
  2. Walk up from cwd looking for folio.yaml
  3. Global config file (~/.config/folio/config.yaml) site_root key
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from folio.core.errors import ConfigError

CONFIG_FILENAME = "folio.yaml"

DEFAULT_MARKDOWN_EXTENSIONS = ("fenced_code", "tables", "toc", "sane_lists")
DRAFT_REFERENCE_POLICIES = ("warn", "error")


@dataclass(frozen=True)
class SiteConfig:
    """Settings read from folio.yaml."""

    title: str = "My Site"
    base_url: str = "/"
    language: str = "en"
    content_dir: str = "content"
    output_dir: str = "public"
    templates_dir: str = "templates"
    draft_references: str = "warn"
    markdown_extensions: tuple[str, ...] = DEFAULT_MARKDOWN_EXTENSIONS
    jobs: int = 4

    @classmethod
    def from_dict(cls, data: dict[str, Any], source: Path | None = None) -> SiteConfig:
        """Build a config from parsed YAML, rejecting unknown keys and bad types.

        Args:
            data: Mapping loaded from folio.yaml
            source: File the data came from, for error messages

        Raises:
            ConfigError: If a key is unknown or a value has the wrong type
        """
        where = f" in {source}" if source else ""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config key(s){where}: {', '.join(unknown)}")

        values: dict[str, Any] = {}
        for key, value in data.items():
            if key == "markdown_extensions":
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    raise ConfigError(f"'markdown_extensions'{where} must be a list of strings")
                values[key] = tuple(value)
            elif key == "jobs":
                if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                    raise ConfigError(f"'jobs'{where} must be a positive integer")
                values[key] = value
            else:
                if not isinstance(value, str):
                    raise ConfigError(f"'{key}'{where} must be a string")
                values[key] = value

        if values.get("draft_references", "warn") not in DRAFT_REFERENCE_POLICIES:
            raise ConfigError(
                f"'draft_references'{where} must be one of: "
                f"{', '.join(DRAFT_REFERENCE_POLICIES)}"
            )
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a YAML-friendly dictionary."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["markdown_extensions"] = list(self.markdown_extensions)
        return data


@dataclass(frozen=True)
class SitePaths:
    """Standard paths for a folio site."""

    root: Path
    config_file: Path
    content: Path
    output: Path
    templates: Path
    config: SiteConfig = field(default_factory=SiteConfig)


def get_global_config_path() -> Path:
    """Return the path to the global folio config file.

    Respects XDG_CONFIG_HOME if set, otherwise defaults to
    ~/.config/folio/config.yaml.
    """
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        base = Path(xdg_config_home)
    else:
        base = Path.home() / ".config"
    return base / "folio" / "config.yaml"


def load_global_config() -> dict:
    """Load the global folio configuration.

    Returns:
        Configuration dict, or empty dict if file is missing or invalid.
    """
    config_path = get_global_config_path()
    if not config_path.is_file():
        return {}
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            return data
        return {}
    except (OSError, yaml.YAMLError):
        return {}


def _walk_up_for_config(start_path: Path) -> Path | None:
    """Walk up directory tree looking for folio.yaml."""
    current = start_path.resolve()
    while True:
        if (current / CONFIG_FILENAME).is_file():
            return current
        if current == current.parent:
            return None
        current = current.parent


def find_site_root(start_path: Path | None = None) -> Path:
    """Find the site root using 3-tier resolution.

    Args:
        start_path: Starting path for the folio.yaml walk (defaults to cwd)

    Returns:
        Path to site root

    Raises:
        FileNotFoundError: If no site root is found by any method
    """
    env_root = os.environ.get("FOLIO_SITE_ROOT")
    if env_root:
        env_path = Path(env_root).resolve()
        if (env_path / CONFIG_FILENAME).is_file():
            return env_path
        raise FileNotFoundError(
            f"FOLIO_SITE_ROOT={env_root} does not contain {CONFIG_FILENAME}."
        )

    if start_path is None:
        start_path = Path.cwd()
    result = _walk_up_for_config(Path(start_path))
    if result is not None:
        return result

    site_root_str = load_global_config().get("site_root")
    if site_root_str:
        global_path = Path(site_root_str).expanduser().resolve()
        if (global_path / CONFIG_FILENAME).is_file():
            return global_path
        raise FileNotFoundError(
            f"Global config site_root={site_root_str} does not contain {CONFIG_FILENAME}."
        )

    raise FileNotFoundError(
        f"Could not find {CONFIG_FILENAME} starting from {start_path}. "
        f"Run 'folio init' to create one, set FOLIO_SITE_ROOT, or configure "
        f"site_root in {get_global_config_path()}."
    )


@lru_cache(maxsize=1)
def get_site_root() -> Path:
    """Get the cached site root path."""
    return find_site_root()


def load_site_config(site_root: Path) -> SiteConfig:
    """Read folio.yaml from a site root.

    A missing file yields the defaults.

    Raises:
        ConfigError: If the file is unreadable or invalid
    """
    config_file = Path(site_root) / CONFIG_FILENAME
    if not config_file.exists():
        return SiteConfig()
    try:
        data = yaml.safe_load(config_file.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read {config_file}: {e}") from e
    if data is None:
        return SiteConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file} must contain a mapping")
    return SiteConfig.from_dict(data, source=config_file)


def get_paths(site_root: Path | None = None) -> SitePaths:
    """Get all standard paths for the site.

    Args:
        site_root: Site root path (uses cached default if not provided)
    """
    if site_root is None:
        site_root = get_site_root()

    site_root = Path(site_root)
    config = load_site_config(site_root)

    return SitePaths(
        root=site_root,
        config_file=site_root / CONFIG_FILENAME,
        content=site_root / config.content_dir,
        output=site_root / config.output_dir,
        templates=site_root / config.templates_dir,
        config=config,
    )


def write_default_config(site_root: Path, title: str | None = None) -> Path:
    """Write a starter folio.yaml.

    Returns:
        Path of the written file
    """
    config = SiteConfig(title=title) if title else SiteConfig()
    config_file = Path(site_root) / CONFIG_FILENAME
    config_file.write_text(
        yaml.dump(config.to_dict(), default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    return config_file

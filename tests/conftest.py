"""Shared test fixtures for folio."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType

import pytest

from folio.content.models import Post


def _toml_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_toml_value(v) for v in value) + "]"
    if isinstance(value, str):
        return json.dumps(value)
    return str(value)


@pytest.fixture
def site_root(tmp_path, monkeypatch):
    """Create a site with folio.yaml and an empty content/post directory."""
    (tmp_path / "folio.yaml").write_text(
        "title: Test Site\nbase_url: /\njobs: 2\n", encoding="utf-8"
    )
    (tmp_path / "content" / "post").mkdir(parents=True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / ".xdg"))
    monkeypatch.delenv("FOLIO_SITE_ROOT", raising=False)

    from folio.core import config
    config.get_site_root.cache_clear()
    return tmp_path


@pytest.fixture
def write_post(site_root):
    """Factory fixture for creating content files with TOML front matter."""
    def _write(
        slug: str = "test-post",
        title: str | None = "Test Post",
        date: str | None = "2024-01-01",
        body: str = "Test content.",
        section: str = "post",
        draft: bool = False,
        series: str | None = None,
        tags: list[str] | None = None,
        extra: dict | None = None,
    ) -> Path:
        lines = ["+++"]
        if title is not None:
            lines.append(f"title = {_toml_value(title)}")
        if date is not None:
            lines.append(f"date = {date}")
        if draft:
            lines.append("draft = true")
        if series:
            lines.append(f"series = {_toml_value([series])}")
        if tags:
            lines.append(f"tags = {_toml_value(tags)}")
        for key, value in (extra or {}).items():
            lines.append(f"{key} = {_toml_value(value)}")
        lines.append("+++")

        directory = site_root / "content" / section if section else site_root / "content"
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{slug}.md"
        path.write_text("\n".join(lines) + f"\n\n{body}\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_post():
    """Factory fixture for building Post objects directly."""
    def _make(
        slug: str,
        title: str | None = None,
        date: str = "2024-01-01",
        body: str = "",
        section: str = "post",
        draft: bool = False,
        series: str | None = None,
        tags: tuple[str, ...] = (),
        description: str | None = None,
    ) -> Post:
        published = datetime.fromisoformat(date)
        if published.tzinfo is None:
            published = published.replace(tzinfo=timezone.utc)
        folder = f"content/{section}" if section else "content"
        return Post(
            slug=slug,
            title=title or slug.replace("-", " ").title(),
            published_at=published,
            path=Path(f"{folder}/{slug}.md"),
            body=body,
            is_draft=draft,
            series=series,
            tags=frozenset(tags),
            section=section,
            description=description,
            params=MappingProxyType({}),
        )

    return _make

"""Tests for the series and tags commands."""

import json

import pytest
from click.testing import CliRunner

from folio.cli import main


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def solid_site(site_root, write_post):
    """A site with one three-part series, tags and a draft."""
    name = "SOLID Design Principles"
    write_post(slug="liskov", title="Liskov", date="2023-05-04", series=name, tags=["Design Patterns"])
    write_post(slug="open-closed", title="Open/Closed", date="2023-04-01", series=name, tags=["Design Patterns", "OOP"])
    write_post(slug="single-responsibility", title="SRP", date="2023-02-02", series=name)
    write_post(slug="dependency-inversion", title="DIP", date="2023-07-01", series=name, draft=True, tags=["OOP"])
    return site_root


def _invoke(runner, site, *args):
    return runner.invoke(main, ["--site", str(site), *args])


class TestSeriesCommand:
    def test_list_json(self, runner, solid_site):
        result = _invoke(runner, solid_site, "series", "--json")

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data == [
            {
                "name": "SOLID Design Principles",
                "posts": 3,
                "first": "2023-02-02",
                "last": "2023-05-04",
            }
        ]

    def test_reading_order_json(self, runner, solid_site):
        result = _invoke(runner, solid_site, "series", "SOLID Design Principles", "--json")

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [p["slug"] for p in data["posts"]] == [
            "single-responsibility",
            "open-closed",
            "liskov",
        ]

    def test_drafts_flag(self, runner, solid_site):
        result = _invoke(runner, solid_site, "series", "SOLID Design Principles", "--drafts", "--json")

        data = json.loads(result.output)
        assert data["posts"][-1] == {
            "slug": "dependency-inversion",
            "title": "DIP",
            "date": "2023-07-01",
            "draft": True,
        }

    def test_unknown_series(self, runner, solid_site):
        result = _invoke(runner, solid_site, "series", "Nope")
        assert result.exit_code == 1
        assert "Series not found" in result.output

    def test_table_output(self, runner, solid_site):
        result = _invoke(runner, solid_site, "series")
        assert result.exit_code == 0
        assert "Series (1)" in result.output

    def test_no_series(self, runner, site_root, write_post):
        write_post(slug="lonely")
        result = _invoke(runner, site_root, "series")
        assert result.exit_code == 0
        assert "No series found" in result.output


class TestTagsCommand:
    def test_tags_json(self, runner, solid_site):
        result = _invoke(runner, solid_site, "tags", "--json")

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data == [
            {"tag": "Design Patterns", "count": 2, "posts": ["liskov", "open-closed"]},
            {"tag": "OOP", "count": 1, "posts": ["open-closed"]},
        ]

    def test_tags_with_drafts_and_limit(self, runner, solid_site):
        result = _invoke(runner, solid_site, "tags", "--drafts", "--limit", "1", "--json")

        data = json.loads(result.output)
        assert len(data) == 1
        assert data[0]["count"] == 2

    def test_parse_error_exit_code(self, runner, site_root, write_post):
        write_post(slug="broken", title=None)
        result = _invoke(runner, site_root, "tags")
        assert result.exit_code == 3
        assert "Content Errors" in result.output

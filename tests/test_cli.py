"""Tests for the folio command line."""

import json

import pytest
from click.testing import CliRunner

from folio import __version__
from folio.cli import main


@pytest.fixture
def runner():
    return CliRunner()


def _invoke(runner, site, *args):
    return runner.invoke(main, ["--site", str(site), *args])


def test_version(runner):
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


class TestInit:
    def test_creates_site(self, runner, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        site = tmp_path / "blog"

        result = _invoke(runner, site, "init", "--title", "My Blog")

        assert result.exit_code == 0
        assert "title: My Blog" in (site / "folio.yaml").read_text()
        assert (site / "content").is_dir()

    def test_refuses_to_overwrite(self, runner, site_root):
        before = (site_root / "folio.yaml").read_text()
        result = _invoke(runner, site_root, "init", "--title", "Other")

        assert result.exit_code == 0
        assert "already exists" in " ".join(result.output.split())
        assert (site_root / "folio.yaml").read_text() == before

    def test_force(self, runner, site_root):
        result = _invoke(runner, site_root, "init", "--force", "--title", "Other")
        assert result.exit_code == 0
        assert "title: Other" in (site_root / "folio.yaml").read_text()


class TestBuild:
    def test_success_json(self, runner, site_root, write_post):
        write_post(slug="hello", title="Hello", tags=["intro"])

        result = _invoke(runner, site_root, "build", "--json")

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["ok"] is True
        assert data["posts"] == 1
        assert data["digest"].startswith("sha256:")
        assert (site_root / "public" / "post" / "hello" / "index.html").is_file()

    def test_success_text(self, runner, site_root, write_post):
        write_post(slug="hello")
        result = _invoke(runner, site_root, "build")
        assert result.exit_code == 0
        assert "Built" in result.output

    def test_out_option(self, runner, site_root, write_post, tmp_path):
        write_post(slug="hello")
        out = tmp_path / "dist"
        result = _invoke(runner, site_root, "build", "--out", str(out))
        assert result.exit_code == 0
        assert (out / "index.html").is_file()

    def test_drafts_option(self, runner, site_root, write_post):
        write_post(slug="wip", draft=True)

        result = _invoke(runner, site_root, "build", "--drafts", "--json")

        assert result.exit_code == 0
        assert json.loads(result.output)["posts"] == 1
        assert (site_root / "public" / "post" / "wip" / "index.html").is_file()

    def test_parse_error_exit_code(self, runner, site_root, write_post):
        write_post(slug="no-date", date=None)

        result = _invoke(runner, site_root, "build", "--json")

        assert result.exit_code == 3
        data = json.loads(result.output)
        assert data["ok"] is False
        assert data["errors"][0]["field"] == "date"
        assert not (site_root / "public").exists()

    def test_duplicate_slug_exit_code(self, runner, site_root, write_post):
        write_post(slug="same")
        write_post(slug="same", section="notes")

        result = _invoke(runner, site_root, "build", "--json")

        assert result.exit_code == 4
        assert json.loads(result.output)["errors"][0]["slug"] == "same"

    def test_broken_reference_exit_code(self, runner, site_root, write_post):
        write_post(slug="linker", body='{{< ref "missing" >}}')

        result = _invoke(runner, site_root, "build", "--strict", "--json")

        assert result.exit_code == 5
        error = json.loads(result.output)["errors"][0]
        assert error["kind"] == "broken_reference"
        assert error["target"] == "missing"
        assert not (site_root / "public").exists()

    def test_broken_reference_lenient(self, runner, site_root, write_post):
        write_post(slug="linker", body='{{< ref "missing" >}}')

        result = _invoke(runner, site_root, "build", "--json")

        assert result.exit_code == 0
        assert json.loads(result.output)["warnings"][0]["target"] == "missing"

    def test_render_error_exit_code(self, runner, site_root, write_post):
        write_post(slug="hello")
        templates = site_root / "templates"
        templates.mkdir()
        (templates / "post.html").write_text("{{ post.no_such_field }}")

        result = _invoke(runner, site_root, "build", "--strict", "--json")

        assert result.exit_code == 6
        assert json.loads(result.output)["errors"][0]["kind"] == "render"

    def test_dot_slug_is_a_validation_error(self, runner, site_root, write_post):
        write_post(slug="escape", extra={"slug": ".."})

        result = _invoke(runner, site_root, "build", "--json")

        assert result.exit_code == 3
        assert json.loads(result.output)["errors"][0]["field"] == "slug"
        assert not (site_root / "public").exists()

    def test_missing_content_dir(self, runner, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        (tmp_path / "folio.yaml").write_text("title: Empty\n")

        result = _invoke(runner, tmp_path, "build", "--json")

        assert result.exit_code == 1
        assert json.loads(result.output)["ok"] is False

    def test_bad_config(self, runner, site_root):
        (site_root / "folio.yaml").write_text("jobs: many\n")
        result = _invoke(runner, site_root, "build")
        assert result.exit_code == 1

    def test_error_table(self, runner, site_root, write_post):
        write_post(slug="no-title", title=None)
        result = _invoke(runner, site_root, "build")
        assert result.exit_code == 3
        assert "Content Errors" in result.output


class TestCheck:
    def test_check_json(self, runner, site_root, write_post):
        write_post(slug="a", title="A", body='{{< ref "b" >}}')
        write_post(slug="b", title="B")

        result = _invoke(runner, site_root, "check", "--json")

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data == {"ok": True, "posts": 2, "references": 1, "warnings": []}
        assert not (site_root / "public").exists()

    def test_check_strict(self, runner, site_root, write_post):
        write_post(slug="a", body='{{< ref "nope" >}}')
        result = _invoke(runner, site_root, "check", "--strict")
        assert result.exit_code == 5

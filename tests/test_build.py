"""Tests for whole-site builds."""

import threading

import pytest

from folio.build import BuildOptions, SiteBuilder
from folio.core.config import get_paths
from folio.core.errors import (
    EXIT_PARSE,
    BuildCancelled,
    ContentErrors,
    DuplicateSlugError,
)


def _builder(site_root, converter=None, **overrides):
    options = BuildOptions.from_paths(get_paths(site_root), **overrides)
    return SiteBuilder(options, converter=converter)


@pytest.fixture
def small_site(site_root, write_post):
    write_post(slug="first", title="First", date="2024-01-01", series="Basics", tags=["intro"])
    write_post(
        slug="second",
        title="Second",
        date="2024-02-01",
        series="Basics",
        body='Back to {{< ref "first" >}}.',
    )
    write_post(slug="wip", title="Work in Progress", date="2024-03-01", draft=True)
    return site_root


def test_build_writes_site(small_site):
    report = _builder(small_site).build()

    out = small_site / "public"
    assert (out / "index.html").is_file()
    assert (out / "post" / "first" / "index.html").is_file()
    assert (out / "series" / "basics" / "index.html").is_file()
    assert (out / "tags" / "intro" / "index.html").is_file()
    assert not (out / "post" / "wip").exists()

    assert report.posts == 2
    assert report.drafts_hidden == 1
    assert report.series == 1
    assert report.tags == 1
    assert report.pages == len([p for p in out.rglob("*") if p.is_file()])
    assert report.digest.startswith("sha256:")

    second = (out / "post" / "second" / "index.html").read_text()
    assert "Back to ../first/." in second
    assert 'rel="prev" href="../../post/first/"' in second


def test_rebuild_is_byte_identical(small_site):
    first = _builder(small_site).build()
    second = _builder(small_site, jobs=1).build()
    assert first.digest == second.digest


def test_drafts_included(small_site):
    report = _builder(small_site, include_drafts=True).build()
    assert report.posts == 3
    assert report.drafts_hidden == 0
    assert (small_site / "public" / "post" / "wip" / "index.html").is_file()


def test_custom_out_dir(small_site, tmp_path):
    out = tmp_path / "elsewhere"
    report = _builder(small_site, out_dir=out).build()
    assert report.out_dir == out
    assert (out / "index.html").is_file()
    assert not (small_site / "public").exists()


def test_strict_broken_reference_writes_nothing(small_site, write_post):
    write_post(slug="broken", body='{{< ref "nowhere" >}}')

    with pytest.raises(ContentErrors) as excinfo:
        _builder(small_site, strict=True).build()
    assert excinfo.value.errors[0].target == "nowhere"
    assert not (small_site / "public").exists()


def test_failed_build_keeps_previous_output(small_site, write_post):
    _builder(small_site).build()
    before = (small_site / "public" / "index.html").read_text()

    write_post(slug="broken", body='{{< ref "nowhere" >}}')
    with pytest.raises(ContentErrors):
        _builder(small_site, strict=True).build()

    assert (small_site / "public" / "index.html").read_text() == before
    leftovers = [p.name for p in small_site.iterdir() if p.name.startswith(".public")]
    assert leftovers == []


def test_lenient_broken_reference_is_a_warning(small_site, write_post):
    write_post(slug="broken", body='{{< ref "nowhere" >}}')

    report = _builder(small_site).build()
    assert [w.target for w in report.warnings] == ["nowhere"]
    page = (small_site / "public" / "post" / "broken" / "index.html").read_text()
    assert "nowhere" not in page


def test_parse_errors_are_collected(site_root, write_post):
    write_post(slug="ok")
    write_post(slug="no-title", title=None)
    write_post(slug="bad-draft", extra={"draft": "yes"})

    with pytest.raises(ContentErrors) as excinfo:
        _builder(site_root).build()
    assert len(excinfo.value) == 2
    assert excinfo.value.exit_code == EXIT_PARSE


def test_duplicate_slug(site_root, write_post):
    write_post(slug="same")
    write_post(slug="same", section="notes")

    with pytest.raises(DuplicateSlugError):
        _builder(site_root).build()


def test_cancelled_build_publishes_nothing(small_site):
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(BuildCancelled):
        _builder(small_site).build(cancel)
    assert not (small_site / "public").exists()


def test_render_failure_skips_post(small_site):
    def converter(text):
        if "Back to" in text:
            raise ValueError("unsupported")
        return text

    report = _builder(small_site, converter=converter).build()
    assert report.skipped == ["second"]
    assert report.posts == 1
    assert not (small_site / "public" / "post" / "second").exists()


def test_check_does_not_write(small_site):
    result = _builder(small_site).check()
    assert set(result.graph.posts) == {"first", "second"}
    assert len(result.resolution.posts["second"].references) == 1
    assert not (small_site / "public").exists()

"""Tests for the error taxonomy."""

from pathlib import Path

import pytest

from folio.core.errors import (
    EXIT_BROKEN_REFERENCE,
    EXIT_DUPLICATE_SLUG,
    EXIT_PARSE,
    EXIT_RENDER,
    BrokenReferenceError,
    ContentErrors,
    DuplicateSlugError,
    ParseError,
    RenderError,
    ValidationError,
)


@pytest.mark.parametrize(
    "error,code",
    [
        (ParseError("a.md", "bad"), EXIT_PARSE),
        (ValidationError("a.md", "title", "missing"), EXIT_PARSE),
        (DuplicateSlugError("a", Path("x/a.md"), Path("y/a.md")), EXIT_DUPLICATE_SLUG),
        (BrokenReferenceError("a.md", "b"), EXIT_BROKEN_REFERENCE),
        (RenderError("a.md", "boom"), EXIT_RENDER),
    ],
)
def test_exit_codes(error, code):
    assert error.exit_code == code


def test_parse_error_str_includes_line():
    assert str(ParseError(Path("post/a.md"), "bad toml", line=4)) == "post/a.md:4: bad toml"


def test_validation_error_dict():
    data = ValidationError(Path("a.md"), "date", "required field is missing").to_dict()
    assert data == {
        "kind": "validation",
        "path": "a.md",
        "message": "required field is missing",
        "field": "date",
    }


def test_duplicate_slug_names_both_files():
    error = DuplicateSlugError("a", Path("notes/a.md"), Path("post/a.md"))
    assert error.path == Path("post/a.md")
    assert "notes/a.md" in error.message
    assert error.to_dict()["conflicts_with"] == "notes/a.md"


def test_content_errors_aggregate():
    errors = ContentErrors([BrokenReferenceError("a.md", "x"), ParseError("b.md", "bad")])
    assert len(errors) == 2
    assert errors.exit_code == EXIT_BROKEN_REFERENCE
    assert errors.message == "2 content errors"
    assert [e["kind"] for e in errors.to_list()] == ["broken_reference", "parse"]


def test_content_errors_needs_errors():
    with pytest.raises(ValueError):
        ContentErrors([])

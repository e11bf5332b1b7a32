"""folio: build a static HTML site from Markdown posts with front matter."""

__version__ = "0.1.0"

"""
Rendering for folio sites.

Provides:
- Markdown to HTML conversion
- Jinja2 page templates with site overrides
- The render pipeline producing output documents
"""

from folio.render.markdown import Converter, MarkdownRenderer
from folio.render.pipeline import OutputDocument, RenderPipeline, RenderResult
from folio.render.templates import TemplateEngine

__all__ = [
    "Converter",
    "MarkdownRenderer",
    "OutputDocument",
    "RenderPipeline",
    "RenderResult",
    "TemplateEngine",
]

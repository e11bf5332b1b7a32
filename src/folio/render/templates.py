"""
HTML page templates.

Built-in Jinja2 templates for posts, listing pages and term pages. A site
can override any of them by placing a file with the same name in its
templates directory.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import (
    ChoiceLoader,
    DictLoader,
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateError,
    TemplateNotFound,
)

from folio.core.errors import RenderError

BASE_TEMPLATE = """\
<!DOCTYPE html>
<html lang="{{ site.language }}">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{% block title %}{{ site.title }}{% endblock %}</title>
{% if description %}<meta name="description" content="{{ description }}">
{% endif %}</head>
<body>
<header>
<a class="site-title" href="{{ root }}">{{ site.title }}</a>
<nav><a href="{{ root }}series/">Series</a> <a href="{{ root }}tags/">Tags</a></nav>
</header>
<main>
{% block content %}{% endblock %}
</main>
</body>
</html>
"""

POST_TEMPLATE = """\
{% extends "base.html" %}
{% block title %}{{ post.title }} | {{ site.title }}{% endblock %}
{% block content %}
<article>
<h1>{{ post.title }}</h1>
<p class="meta"><time datetime="{{ post.published_at.isoformat() }}">{{ post.published_at.strftime("%Y-%m-%d") }}</time>
{%- if post.is_draft %} <span class="draft">Draft</span>{% endif %}</p>
{% if series %}<p class="series">Part {{ series.position }} of {{ series.total }} in <a href="{{ root }}{{ series.path }}">{{ series.name }}</a></p>
{% endif %}
{{ content | safe }}
{% if tags %}<ul class="tags">
{% for tag in tags %}<li><a href="{{ root }}{{ tag.path }}">{{ tag.name }}</a></li>
{% endfor %}</ul>
{% endif %}
{% if series and (series.prev or series.next) %}<nav class="series-nav">
{% if series.prev %}<a rel="prev" href="{{ root }}{{ series.prev.path }}">&larr; {{ series.prev.title }}</a>
{% endif %}{% if series.next %}<a rel="next" href="{{ root }}{{ series.next.path }}">{{ series.next.title }} &rarr;</a>
{% endif %}</nav>
{% endif %}
</article>
{% endblock %}
"""

LIST_TEMPLATE = """\
{% extends "base.html" %}
{% block title %}{{ heading }} | {{ site.title }}{% endblock %}
{% block content %}
<h1>{{ heading }}</h1>
{% set tag = "ol" if ordered else "ul" %}<{{ tag }} class="posts">
{% for entry in entries %}<li><a href="{{ root }}{{ entry.path }}">{{ entry.title }}</a> <time datetime="{{ entry.datetime }}">{{ entry.date }}</time>
{%- if entry.draft %} <span class="draft">Draft</span>{% endif %}</li>
{% endfor %}</{{ tag }}>
{% endblock %}
"""

TERMS_TEMPLATE = """\
{% extends "base.html" %}
{% block title %}{{ heading }} | {{ site.title }}{% endblock %}
{% block content %}
<h1>{{ heading }}</h1>
<ul class="terms">
{% for term in terms %}<li><a href="{{ root }}{{ term.path }}">{{ term.name }}</a> <span class="count">({{ term.count }})</span></li>
{% endfor %}</ul>
{% endblock %}
"""

BUILTIN_TEMPLATES = {
    "base.html": BASE_TEMPLATE,
    "post.html": POST_TEMPLATE,
    "list.html": LIST_TEMPLATE,
    "terms.html": TERMS_TEMPLATE,
}


class TemplateEngine:
    """Renders named templates with site overrides."""

    def __init__(self, templates_dir: Path | None = None):
        """Initialize engine.

        Args:
            templates_dir: Directory whose templates take precedence over
                the built-in ones (ignored if missing)
        """
        loaders = []
        if templates_dir is not None and Path(templates_dir).is_dir():
            loaders.append(FileSystemLoader(str(templates_dir)))
        loaders.append(DictLoader(BUILTIN_TEMPLATES))

        self.env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=True,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    def render(self, name: str, path: Path | None = None, **context: Any) -> str:
        """Render a template.

        Args:
            name: Template name, e.g. 'post.html'
            path: Source file the page is built from, for error messages
            **context: Template variables

        Raises:
            RenderError: If the template is missing or fails
        """
        try:
            return self.env.get_template(name).render(**context)
        except TemplateNotFound as e:
            raise RenderError(path, f"template not found: {e.name}") from e
        except TemplateError as e:
            raise RenderError(path, f"template '{name}' failed: {e}") from e

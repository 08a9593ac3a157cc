from __future__ import annotations

import os
import re

from jinja2 import Environment, FileSystemLoader, select_autoescape

from frameforge.models import UIDocument

# Jinja environment that looks in frameforge/templates
_env = Environment(
    loader=FileSystemLoader(os.path.join(os.path.dirname(__file__), "templates")),
    autoescape=select_autoescape(["html", "xml"]),
    enable_async=False,
)

_CLOSE_SCRIPT_RE = re.compile(r"</(script)", re.IGNORECASE)
_CLOSE_STYLE_RE = re.compile(r"</(style)", re.IGNORECASE)


def render_document_shell(body: str, title: str = "Generated UI") -> str:
    """Wrap an HTML fragment in a minimal standalone document."""
    return _env.get_template("document_shell.html").render(body=body, title=title)


def render_ui_document(doc: UIDocument, title: str = "Generated UI") -> str:
    """
    Combine html/css/js into one self-contained page.
    The script tag is omitted entirely when js is blank.
    """
    # Keep inline code from closing its own container tag early
    css = _CLOSE_STYLE_RE.sub(r"<\\/\1", doc.css)
    js = _CLOSE_SCRIPT_RE.sub(r"<\\/\1", doc.js) if doc.js.strip() else ""
    return _env.get_template("renderable.html").render(html=doc.html, css=css, js=js, title=title)

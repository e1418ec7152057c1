"""Minimal Markdown-to-HTML conversion for the editor preview."""

from __future__ import annotations

import re

from markupsafe import escape

_SUBSTITUTIONS = [
    (re.compile(r"^### (.*)$", re.MULTILINE), r"<h3>\1</h3>"),
    (re.compile(r"^## (.*)$", re.MULTILINE), r"<h2>\1</h2>"),
    (re.compile(r"^# (.*)$", re.MULTILINE), r"<h1>\1</h1>"),
    (re.compile(r"\*\*(.*?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.*?)\*"), r"<em>\1</em>"),
    (re.compile(r"^[ \t]*- (.*)$", re.MULTILINE), r"<li>\1</li>"),
    (re.compile(r"^[ \t]*\d+[.)][ \t]+(.*)$", re.MULTILINE), r"<li>\1</li>"),
]
_LIST_RUN = re.compile(r"(?:<li>.*?</li>(?:<br />)*)+")
_DOUBLE_BREAK = re.compile(r"<br />\s*<br />")


def render_markdown(text: str) -> str:
    """Render the subset of Markdown the formatter produces as HTML.

    Input is escaped first, so only tags introduced here reach the page.
    """
    if not text:
        return ""

    html = str(escape(text))
    for pattern, replacement in _SUBSTITUTIONS:
        html = pattern.sub(replacement, html)
    html = html.replace("\n", "<br />")

    html = _LIST_RUN.sub(lambda match: f"<ul>{match.group(0).replace('<br />', '')}</ul>", html)
    html = _DOUBLE_BREAK.sub("<br />", html)
    return html

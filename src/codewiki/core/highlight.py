"""Syntax highlighting for code block embeds."""

from __future__ import annotations

from typing import Protocol

from pygments import highlight as pygments_highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound


class Highlighter(Protocol):
    def supports(self, language: str) -> bool:
        ...

    def highlight(self, code: str, language: str, theme: str) -> str:
        ...


class PygmentsHighlighter:
    """Highlight with Pygments lexers looked up by alias.

    The theme only selects a CSS class; stylesheets are served elsewhere.
    """

    def supports(self, language: str) -> bool:
        try:
            get_lexer_by_name(language.strip())
        except ClassNotFound:
            return False
        return True

    def highlight(self, code: str, language: str, theme: str) -> str:
        lexer = get_lexer_by_name(language.strip(), stripnl=False)
        formatter = HtmlFormatter(cssclass=f"highlight {theme}")
        return pygments_highlight(code, lexer, formatter).rstrip("\n")

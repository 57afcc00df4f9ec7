"""Markup engine contract and registry for plain-text segments.

// [LAW:one-source-of-truth] Engine registration and key lookup are centralized here.
// [LAW:locality-or-seam] The renderer talks only to MarkupRegistry, never to engine libraries.

The registry is built once at startup (see codewiki.app.build_service) and
passed to the Renderer; there is no module-level registry.
"""

from __future__ import annotations

import html
from typing import Protocol

import markdown
import textile


class MarkupEngine(Protocol):
    @property
    def name(self) -> str:
        ...

    def to_html(self, text: str) -> str:
        ...


class MarkdownEngine:
    name = "markdown"

    def __init__(self, extensions: tuple[str, ...] = ("tables", "fenced_code")):
        self.extensions = extensions

    def to_html(self, text: str) -> str:
        if not text:
            return ""
        # Markdown instances carry per-document state; one per conversion.
        md = markdown.Markdown(extensions=list(self.extensions))
        return md.convert(text)


class TextileEngine:
    name = "textile"

    def to_html(self, text: str) -> str:
        if not text:
            return ""
        return textile.textile(text)


class HtmlEngine:
    """Safe passthrough: text is emitted HTML-escaped, never interpreted."""

    name = "html"

    def to_html(self, text: str) -> str:
        return html.escape(text)


def _normalize_key(key: str | None) -> str:
    return str(key or "").strip().lower()


class MarkupRegistry:
    def __init__(self, fallback: MarkupEngine | None = None):
        self._engines: dict[str, MarkupEngine] = {}
        self._fallback = fallback or HtmlEngine()
        self.register(self._fallback)

    def register(self, engine: MarkupEngine, key: str | None = None) -> None:
        normalized = _normalize_key(key or engine.name)
        if not normalized:
            raise ValueError("markup engine key must not be empty")
        self._engines[normalized] = engine

    def engine_for(self, key: str | None) -> MarkupEngine:
        return self._engines.get(_normalize_key(key), self._fallback)

    def keys(self) -> list[str]:
        return sorted(self._engines)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and _normalize_key(key) in self._engines

    def render(self, text: str, key: str | None) -> str:
        return self.engine_for(key).to_html(text)


def default_registry() -> MarkupRegistry:
    registry = MarkupRegistry(fallback=HtmlEngine())
    registry.register(MarkdownEngine())
    registry.register(TextileEngine())
    return registry

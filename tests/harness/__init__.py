"""In-process test harness for codewiki.

Re-exports all public API for convenient imports:
    from tests.harness import FakeHighlighter, FakeDiagrams, make_renderer, ...
"""

from tests.harness.fakes import (
    FakeDiagrams,
    FakeHighlighter,
    diagram_url,
    make_renderer,
    make_service,
)

__all__ = [
    "FakeDiagrams",
    "FakeHighlighter",
    "diagram_url",
    "make_renderer",
    "make_service",
]

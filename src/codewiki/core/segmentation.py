"""Segment a raw page body into typed Segments for rendering.

Splits a page body into structural regions:
- PLAIN_TEXT: markup source handed to the page's markup engine
- CODE_BLOCK: `-:lang` ... `-:lang` embed (syntax highlighted, filed as a code block)
- DIAGRAM_BLOCK: `::` ... `::` embed (Graphviz source, filed as a diagram block)

Two passes with fixed precedence: code embeds are searched across the whole
buffer first; diagram embeds are only searched when no code embed exists.
Embed bodies are opaque once claimed.

// [LAW:dataflow-not-control-flow] segment() is a pure function: text in, Segments out.
// [LAW:one-source-of-truth] All body segmentation logic lives here.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

CODE_THEME = "blackboard"


# ─── Data model ──────────────────────────────────────────────────────────────


class SegmentKind(Enum):
    PLAIN_TEXT = "plain_text"
    CODE_BLOCK = "code_block"
    DIAGRAM_BLOCK = "diagram_block"


@dataclass(frozen=True)
class CodeMeta:
    language: str  # tag on the opening `-:` line
    closing_language: str  # tag on the closing `-:` line, checked at render time
    theme: str = CODE_THEME


@dataclass(frozen=True)
class DiagramMeta:
    opening: str
    closing: str


@dataclass(frozen=True)
class Segment:
    kind: SegmentKind
    raw: str  # markup source, or embed body with delimiter lines stripped
    meta: CodeMeta | DiagramMeta | None = None

    @property
    def source(self) -> str:
        """Segment text as it appears in a body, delimiters included."""
        if isinstance(self.meta, CodeMeta):
            return f"-:{self.meta.language}\n{self.raw}-:{self.meta.closing_language}"
        if isinstance(self.meta, DiagramMeta):
            return f"{self.meta.opening}\n{self.raw}{self.meta.closing}"
        return self.raw


@dataclass(frozen=True)
class EmbedMatch:
    """One embed located by the delimiter scanner."""

    before: str
    embed: str  # embed text including delimiter lines
    after: str
    segment: Segment


# ─── Regex patterns ──────────────────────────────────────────────────────────

# `-:lang` line, one or more code lines, nearest `-:lang` line
CODE_EMBED_RE = re.compile(r"^-:([^\n]*)\n(.*?\n)-:([^\n]*)$", re.MULTILINE | re.DOTALL)

# `::` line, one or more source lines, nearest `::` line
DIAGRAM_EMBED_RE = re.compile(r"^(::)\n(.*?\n)(::)$", re.MULTILINE | re.DOTALL)


# ─── Delimiter scanner ───────────────────────────────────────────────────────


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def find_embed(text: str, kind: SegmentKind) -> EmbedMatch | None:
    """Locate the first embed of the given kind, or None.

    Leftmost start wins; its end is the nearest closing delimiter line.
    The newline separating the embed from surrounding text belongs to neither side.
    """
    if kind is SegmentKind.CODE_BLOCK:
        m = CODE_EMBED_RE.search(text)
        if m is None:
            return None
        found = Segment(kind, m.group(2), CodeMeta(m.group(1), m.group(3)))
    elif kind is SegmentKind.DIAGRAM_BLOCK:
        m = DIAGRAM_EMBED_RE.search(text)
        if m is None:
            return None
        found = Segment(kind, m.group(2), DiagramMeta(m.group(1), m.group(3)))
    else:
        raise ValueError(f"no delimiter syntax for {kind.value}")

    before = text[: m.start()]
    after = text[m.end() :]
    return EmbedMatch(
        before=before[:-1] if before.endswith("\n") else before,
        embed=m.group(0),
        after=after[1:] if after.startswith("\n") else after,
        segment=found,
    )


# ─── Segmentation algorithm ─────────────────────────────────────────────────


def segment(body: str | None) -> tuple[Segment, ...]:
    """Segment a page body into ordered Segments.

    Total: unterminated or inline delimiters degrade to plain text, and
    mismatched tags are carried in CodeMeta for the renderer to reject.
    """
    if not body:
        return ()
    segments = tuple(_segment(normalize_newlines(body)))
    logger.debug(
        "segmented body: %d chars -> %d segments", len(body), len(segments)
    )
    return segments


def _segment(text: str) -> list[Segment]:
    segments: list[Segment] = []
    while text:
        # Diagram scanning only runs when the whole buffer has no code embed.
        found = find_embed(text, SegmentKind.CODE_BLOCK) or find_embed(
            text, SegmentKind.DIAGRAM_BLOCK
        )
        if found is None:
            segments.append(Segment(SegmentKind.PLAIN_TEXT, text))
            break
        segments.extend(_segment(found.before))
        segments.append(found.segment)
        text = found.after
    return segments


def join_segments(segments: Iterable[Segment]) -> str:
    """Rebuild body text from Segments; segment(join_segments(s)) == s."""
    return "\n".join(sb.source for sb in segments)

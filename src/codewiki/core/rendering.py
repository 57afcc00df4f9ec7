"""Render a Segment sequence to HTML and collect new code/diagram records.

// [LAW:dataflow-not-control-flow] render() returns records to file; it never persists.
// [LAW:single-enforcer] Delegate failures are wrapped into DelegateRenderFailure here only.

Code stamps link to the code block's stored id, which does not exist until
the records are filed. render() therefore emits CodeStamp placeholders and
RenderResult.finalize() fills them in once ids are known.
"""

from __future__ import annotations

import html
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from codewiki.core.diagram import DiagramRenderer
from codewiki.core.errors import (
    DelegateRenderFailure,
    MismatchedCodeBlock,
    MismatchedDiagramBlock,
    RenderValidationError,
    UnsupportedLanguage,
)
from codewiki.core.highlight import Highlighter
from codewiki.core.markup import MarkupRegistry
from codewiki.core.segmentation import CodeMeta, DiagramMeta, Segment, SegmentKind

logger = logging.getLogger(__name__)

FRAGMENT_SEPARATOR = "\n"


# ─── Records and output ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class CodeBlockRecord:
    code: str
    language: str
    theme: str
    version: int


@dataclass(frozen=True)
class DiagramBlockRecord:
    source: str
    image_url: str
    version: int


SubResource = CodeBlockRecord | DiagramBlockRecord


@dataclass(frozen=True)
class CodeStamp:
    resource_index: int  # position in RenderResult.sub_resources
    language: str


Fragment = str | CodeStamp


def humanize(value: str) -> str:
    text = value.replace("_", " ").strip()
    return text[:1].upper() + text[1:].lower()


def code_stamp_html(language: str, href: str) -> str:
    return (
        '<p class="code_stamp">'
        f'<span class="syntax">{html.escape(humanize(language))}</span>'
        f'<a href="{html.escape(href, quote=True)}">View Source</a>'
        "</p>"
    )


@dataclass(frozen=True)
class RenderResult:
    fragments: tuple[Fragment, ...]
    sub_resources: tuple[SubResource, ...]

    def finalize(self, page_path: str, resource_ids: Sequence[int]) -> str:
        """Final HTML with every stamp linked to ``/<page_path>/code/<id>``.

        ``resource_ids`` is aligned with ``sub_resources``.
        """
        if len(resource_ids) != len(self.sub_resources):
            raise ValueError(
                f"expected {len(self.sub_resources)} resource ids, got {len(resource_ids)}"
            )
        return self._join(
            lambda stamp: f"/{page_path}/code/{resource_ids[stamp.resource_index]}"
        )

    @property
    def draft_html(self) -> str:
        """HTML for previews; stamps link nowhere since nothing is filed."""
        return self._join(lambda stamp: "#")

    def _join(self, href_for) -> str:
        parts: list[str] = []
        for fragment in self.fragments:
            if isinstance(fragment, CodeStamp):
                parts.append(code_stamp_html(fragment.language, href_for(fragment)))
            else:
                parts.append(fragment)
        return FRAGMENT_SEPARATOR.join(parts)


EMPTY_RESULT = RenderResult((), ())


# ─── Validation ──────────────────────────────────────────────────────────────


def check_segment(
    sb: Segment, highlighter: Highlighter | None = None
) -> RenderValidationError | None:
    """Structural check for one segment; no delegate renderer is invoked."""
    if sb.kind is SegmentKind.CODE_BLOCK:
        if not isinstance(sb.meta, CodeMeta):
            return MismatchedCodeBlock("", "")
        if sb.meta.language != sb.meta.closing_language:
            return MismatchedCodeBlock(sb.meta.language, sb.meta.closing_language)
        if highlighter is not None and not highlighter.supports(sb.meta.language):
            return UnsupportedLanguage(sb.meta.language)
    elif sb.kind is SegmentKind.DIAGRAM_BLOCK:
        if not isinstance(sb.meta, DiagramMeta) or sb.meta.opening != sb.meta.closing:
            return MismatchedDiagramBlock()
    return None


def check_segments(
    segments: Iterable[Segment], highlighter: Highlighter | None = None
) -> list[RenderValidationError]:
    errors: list[RenderValidationError] = []
    for sb in segments:
        error = check_segment(sb, highlighter)
        if error is not None:
            errors.append(error)
    return errors


# ─── Renderer ────────────────────────────────────────────────────────────────


class Renderer:
    def __init__(
        self,
        markup: MarkupRegistry,
        highlighter: Highlighter,
        diagrams: DiagramRenderer,
    ):
        self.markup = markup
        self.highlighter = highlighter
        self.diagrams = diagrams

    def render(
        self,
        segments: Sequence[Segment],
        markup_parser: str | None,
        target_version: int,
    ) -> RenderResult:
        """Render segments in order, filing new records under ``target_version``.

        Raises RenderValidationError on the first bad segment; no partial
        result is returned.
        """
        fragments: list[Fragment] = []
        records: list[SubResource] = []

        for sb in segments:
            error = check_segment(sb, self.highlighter)
            if error is not None:
                raise error

            if sb.kind is SegmentKind.CODE_BLOCK:
                meta = sb.meta
                records.append(
                    CodeBlockRecord(
                        code=sb.raw,
                        language=meta.language,
                        theme=meta.theme,
                        version=target_version,
                    )
                )
                fragments.append(CodeStamp(len(records) - 1, meta.language))
                fragments.append(
                    self._delegate(
                        "highlighter",
                        self.highlighter.highlight,
                        sb.raw,
                        meta.language,
                        meta.theme,
                    )
                )
            elif sb.kind is SegmentKind.DIAGRAM_BLOCK:
                url = self._delegate("diagram renderer", self.diagrams.render, sb.raw)
                records.append(
                    DiagramBlockRecord(source=sb.raw, image_url=url, version=target_version)
                )
                fragments.append(f'<img src="{html.escape(url, quote=True)}" />')
            else:
                engine = self.markup.engine_for(markup_parser)
                fragments.append(self._delegate(engine.name, engine.to_html, sb.raw))

        logger.debug(
            "rendered %d segments into %d fragments, %d records for version %d",
            len(segments),
            len(fragments),
            len(records),
            target_version,
        )
        return RenderResult(tuple(fragments), tuple(records))

    @staticmethod
    def _delegate(engine: str, fn, *args) -> str:
        try:
            return fn(*args)
        except RenderValidationError:
            raise
        except Exception as e:
            logger.warning("%s failed: %s", engine, e)
            raise DelegateRenderFailure(engine, e) from e

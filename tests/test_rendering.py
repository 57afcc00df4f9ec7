"""Tests for codewiki.core.rendering — segment rendering and code stamps."""

import pytest

from codewiki.core.errors import (
    DelegateRenderFailure,
    MismatchedCodeBlock,
    MismatchedDiagramBlock,
    UnsupportedLanguage,
)
from codewiki.core.rendering import (
    EMPTY_RESULT,
    CodeBlockRecord,
    CodeStamp,
    DiagramBlockRecord,
    check_segments,
    code_stamp_html,
    humanize,
)
from codewiki.core.segmentation import DiagramMeta, Segment, SegmentKind, segment
from tests.harness import FakeDiagrams, FakeHighlighter, diagram_url, make_renderer

STAMP_RUBY_42 = (
    '<p class="code_stamp"><span class="syntax">Ruby</span>'
    '<a href="/Home/code/42">View Source</a></p>'
)


def render(body, parser="html", version=3, **kwargs):
    renderer, highlighter, diagrams = make_renderer(**kwargs)
    return renderer.render(segment(body), parser, version), highlighter, diagrams


class TestPlainText:
    def test_plain_text_goes_through_markup_engine(self):
        result, _, _ = render("<b>hi</b>")
        assert result.draft_html == "&lt;b&gt;hi&lt;/b&gt;"
        assert result.sub_resources == ()

    def test_unknown_parser_falls_back_to_html(self):
        result, _, _ = render("a & b", parser="no-such-engine")
        assert result.draft_html == "a &amp; b"

    def test_empty_segments_render_nothing(self):
        renderer, _, _ = make_renderer()
        result = renderer.render((), "markdown", 1)
        assert result == EMPTY_RESULT
        assert result.draft_html == ""
        assert result.finalize("Home", []) == ""


class TestCodeBlock:
    def test_intro_code_outro(self):
        result, highlighter, _ = render("intro\n-:ruby\ncode here\n-:ruby\noutro")
        assert result.sub_resources == (
            CodeBlockRecord(code="code here\n", language="ruby", theme="blackboard", version=3),
        )
        assert result.fragments[1] == CodeStamp(0, "ruby")
        assert highlighter.calls == [("code here\n", "ruby", "blackboard")]
        assert result.finalize("Home", [42]) == "\n".join(
            [
                "intro",
                STAMP_RUBY_42,
                '<pre class="ruby blackboard">code here\n</pre>',
                "outro",
            ]
        )

    def test_mismatched_tags_fail_without_records(self):
        renderer, highlighter, _ = make_renderer()
        with pytest.raises(MismatchedCodeBlock) as excinfo:
            renderer.render(segment("-:ruby\ncode\n-:python"), "html", 1)
        assert excinfo.value.open_tag == "ruby"
        assert excinfo.value.close_tag == "python"
        assert excinfo.value.field == "body"
        assert "'ruby' and 'python'" in excinfo.value.message
        assert highlighter.calls == []

    def test_unsupported_language(self):
        with pytest.raises(UnsupportedLanguage) as excinfo:
            render("-:nope\nx\n-:nope")
        assert excinfo.value.language == "nope"

    def test_highlighter_failure_is_wrapped(self):
        boom = RuntimeError("lexer exploded")
        with pytest.raises(DelegateRenderFailure) as excinfo:
            render("-:ruby\nx\n-:ruby", highlighter=FakeHighlighter(fail_with=boom))
        assert excinfo.value.engine == "highlighter"
        assert excinfo.value.cause is boom
        assert excinfo.value.__cause__ is boom

    def test_stamp_ids_follow_record_order(self):
        result, _, _ = render("-:ruby\na\n-:ruby\n-:python\nb\n-:python")
        html = result.finalize("Page", [7, 8])
        assert 'href="/Page/code/7"' in html
        assert 'href="/Page/code/8"' in html
        assert html.index("Ruby") < html.index("Python")

    def test_finalize_requires_an_id_per_record(self):
        result, _, _ = render("-:ruby\na\n-:ruby")
        with pytest.raises(ValueError):
            result.finalize("Home", [])

    def test_draft_stamps_link_nowhere(self):
        result, _, _ = render("-:ruby\na\n-:ruby")
        assert 'href="#"' in result.draft_html


class TestDiagramBlock:
    def test_text_diagram_text(self):
        result, _, diagrams = render("a\n::\ndigraph{}\n::\nb")
        url = diagram_url("digraph{}\n")
        assert diagrams.calls == ["digraph{}\n"]
        assert result.sub_resources == (
            DiagramBlockRecord(source="digraph{}\n", image_url=url, version=3),
        )
        assert result.draft_html == f'a\n<img src="{url}" />\nb'

    def test_diagram_failure_is_wrapped(self):
        with pytest.raises(DelegateRenderFailure) as excinfo:
            render("::\nx\n::", diagrams=FakeDiagrams(fail_with=OSError("no dot")))
        assert excinfo.value.engine == "diagram renderer"

    def test_structurally_mismatched_markers(self):
        renderer, _, diagrams = make_renderer()
        bad = Segment(SegmentKind.DIAGRAM_BLOCK, "x\n", DiagramMeta("::", ":: "))
        with pytest.raises(MismatchedDiagramBlock):
            renderer.render([bad], "html", 1)
        assert diagrams.calls == []


class TestMixed:
    def test_both_kinds_filed_under_same_version_in_order(self):
        body = "top\n-:ruby\ny\n-:ruby\nmiddle\n::\ngraph {}\n::\nend"
        result, _, _ = render(body, version=9)
        assert [type(r) for r in result.sub_resources] == [CodeBlockRecord, DiagramBlockRecord]
        assert {r.version for r in result.sub_resources} == {9}

    def test_rendering_is_idempotent(self):
        body = "intro\n-:ruby\nx\n-:ruby\n::\ng\n::\noutro"
        renderer, _, _ = make_renderer()
        first = renderer.render(segment(body), "html", 4)
        second = renderer.render(segment(body), "html", 4)
        assert first.sub_resources == second.sub_resources
        assert first.finalize("P", [1, 2]) == second.finalize("P", [1, 2])


class TestCheckSegments:
    def test_collects_every_problem(self):
        body = "-:ruby\na\n-:python\ntext\n-:nope\nb\n-:nope"
        errors = check_segments(segment(body), FakeHighlighter())
        assert [type(e) for e in errors] == [MismatchedCodeBlock, UnsupportedLanguage]

    def test_language_not_checked_without_highlighter(self):
        assert check_segments(segment("-:nope\nb\n-:nope")) == []

    def test_embed_without_delimiter_meta_is_a_body_error(self):
        segments = [
            Segment(SegmentKind.CODE_BLOCK, "x\n"),
            Segment(SegmentKind.DIAGRAM_BLOCK, "g\n"),
        ]
        errors = check_segments(segments, FakeHighlighter())
        assert [type(e) for e in errors] == [MismatchedCodeBlock, MismatchedDiagramBlock]
        assert {e.field for e in errors} == {"body"}

    def test_render_rejects_code_segment_without_meta(self):
        renderer, highlighter, _ = make_renderer()
        with pytest.raises(MismatchedCodeBlock):
            renderer.render([Segment(SegmentKind.CODE_BLOCK, "x\n")], "html", 1)
        assert highlighter.calls == []


class TestStampHtml:
    def test_humanize(self):
        assert humanize("ruby") == "Ruby"
        assert humanize("shell_session") == "Shell session"

    def test_stamp_escapes_language(self):
        html = code_stamp_html("<x>", "/p/code/1")
        assert "&lt;x&gt;" in html

"""Tests for codewiki.core.diagram — Graphviz adapter with subprocess stubbed."""

import subprocess

import pytest

from codewiki.core.diagram import GraphvizRenderer


@pytest.fixture
def fake_dot(monkeypatch):
    """Replace subprocess.run; writes the -o target like dot would."""
    calls = []

    def run(args, **kwargs):
        calls.append((args, kwargs))
        out = args[args.index("-o") + 1]
        with open(out, "wb") as f:
            f.write(b"PNG")
        return subprocess.CompletedProcess(args, 0, "", "")

    monkeypatch.setattr("codewiki.core.diagram.subprocess.run", run)
    return calls


class TestGraphvizRenderer:
    def test_renders_content_addressed_image(self, tmp_path, fake_dot):
        renderer = GraphvizRenderer(tmp_path / "img", url_prefix="/diagrams/")
        url = renderer.render("digraph { a -> b }\n")
        name = renderer.image_name("digraph { a -> b }\n")
        assert url == f"/diagrams/{name}"
        assert (tmp_path / "img" / name).read_bytes() == b"PNG"
        args, kwargs = fake_dot[0]
        assert args[:2] == ["dot", "-Tpng"]
        assert kwargs["input"] == "digraph { a -> b }\n"
        assert kwargs["check"] is True

    def test_same_source_reuses_file(self, tmp_path, fake_dot):
        renderer = GraphvizRenderer(tmp_path)
        assert renderer.render("graph {}") == renderer.render("graph {}")
        assert len(fake_dot) == 1

    def test_different_sources_different_files(self, tmp_path, fake_dot):
        renderer = GraphvizRenderer(tmp_path)
        assert renderer.render("graph { a }") != renderer.render("graph { b }")

    def test_failure_propagates_and_leaves_no_file(self, tmp_path, monkeypatch):
        def run(args, **kwargs):
            out = args[args.index("-o") + 1]
            with open(out, "wb") as f:
                f.write(b"partial")
            raise subprocess.CalledProcessError(1, args, "", "syntax error")

        monkeypatch.setattr("codewiki.core.diagram.subprocess.run", run)
        renderer = GraphvizRenderer(tmp_path)
        with pytest.raises(subprocess.CalledProcessError):
            renderer.render("digraph {")
        assert list(tmp_path.iterdir()) == []

    def test_custom_command(self, tmp_path, fake_dot):
        GraphvizRenderer(tmp_path, command="/opt/graphviz/bin/dot", image_format="svg").render("g")
        args, _ = fake_dot[0]
        assert args[0] == "/opt/graphviz/bin/dot"
        assert args[1] == "-Tsvg"

"""Tests for the renderer module."""

import json
from pathlib import Path
from xml.dom import minidom

import pytest

from repodump.config import FileInfo, OutputFormat
from repodump.renderer import render_dump, write_output, write_report


def make_file(relative_path: str, content: str, language: str = "text") -> FileInfo:
    return FileInfo(
        path=Path("/project") / relative_path,
        relative_path=relative_path,
        size_bytes=len(content),
        extension=Path(relative_path).suffix,
        language=language,
        content=content,
    )


@pytest.fixture
def files():
    return [
        make_file("file1.txt", "Hello"),
        make_file("src/app.py", "print('hi')\n", language="python"),
    ]


class TestRenderText:
    """Tests for the plain text layout."""

    def test_headers_and_content(self, files):
        text = render_dump("project", files, OutputFormat.TEXT)

        assert text == (
            "==> file1.txt <==\n"
            "Hello\n"
            "\n"
            "==> src/app.py <==\n"
            "print('hi')\n"
            "\n"
        )

    def test_tree_is_prepended(self, files):
        tree = "project/\n└── file1.txt"
        text = render_dump("project", files, OutputFormat.TEXT, tree=tree)

        assert text.startswith(f"Directory structure:\n{tree}\n\n==> file1.txt")

    def test_no_files(self):
        assert render_dump("project", [], OutputFormat.TEXT) == ""


class TestRenderMarkdown:
    """Tests for the Markdown layout."""

    def test_fenced_blocks_with_language(self, files):
        text = render_dump("project", files, OutputFormat.MARKDOWN)

        assert text.startswith("# project\n\n")
        assert "## file1.txt\n\n```\nHello\n```\n" in text
        assert "## src/app.py\n\n```python\nprint('hi')\n```\n" in text

    def test_fence_longer_than_embedded_backticks(self):
        doc = make_file("README.md", "```bash\nls\n```\n", language="markdown")

        text = render_dump("project", [doc], OutputFormat.MARKDOWN)

        assert "````markdown\n```bash\nls\n```\n````\n" in text


class TestRenderXml:
    """Tests for the XML layout."""

    def test_escapes_content_and_attributes(self):
        doc = make_file('a&b "q".html', "<p>Tom & Jerry</p>", language="html")

        text = render_dump("project", [doc], OutputFormat.XML)

        assert text.startswith('<repository name="project">\n')
        assert "path='a&amp;b \"q\".html'" in text
        assert "&lt;p&gt;Tom &amp; Jerry&lt;/p&gt;\n</file>" in text
        assert text.endswith("</repository>\n")

    def test_control_characters_are_replaced(self):
        source = make_file("a.c", "int x;\f\nint y;\x1b[0m\n", language="c")

        text = render_dump("project", [source], OutputFormat.XML, tree="project/\n└── a.c")

        element = minidom.parseString(text).getElementsByTagName("file")[0]
        content = "".join(node.data for node in element.childNodes)
        assert content == "\nint x;\ufffd\nint y;\ufffd[0m\n"

    def test_control_characters_in_path_are_replaced(self):
        doc = make_file("odd\x01name.txt", "ok")

        text = render_dump("project", [doc], OutputFormat.XML)

        element = minidom.parseString(text).getElementsByTagName("file")[0]
        assert element.getAttribute("path") == "odd\ufffdname.txt"


class TestWriteOutput:
    """Tests for write_output."""

    def test_creates_parent_directories(self, tmp_path):
        target = tmp_path / "nested" / "out" / "dump.txt"

        written = write_output("Hello\nWorld\n", target)

        assert written == target.resolve()
        assert target.read_text(encoding="utf-8") == "Hello\nWorld\n"


class TestWriteReport:
    """Tests for write_report."""

    def test_writes_indented_json(self, tmp_path):
        target = tmp_path / "reports" / "report.json"

        written = write_report({"files": [], "token_count": 3, "root": "café"}, target)

        assert written == target.resolve()
        text = target.read_text(encoding="utf-8")
        assert '  "token_count": 3' in text
        assert "café" in text
        assert json.loads(text)["token_count"] == 3

"""
Renderer module for repodump.

Turns a list of read files into a single document in one of the supported layouts.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Optional
from xml.sax.saxutils import escape, quoteattr

from .config import FileInfo, OutputFormat

# Characters XML 1.0 does not allow, even as character references
_XML_INVALID_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def _fence_for(content: str) -> str:
    """Return a backtick fence longer than any backtick run inside `content`."""
    longest = max((len(m) for m in re.findall(r"`+", content)), default=0)
    return "`" * max(3, longest + 1)


def _xml_text(text: str) -> str:
    """Escape `text` for XML, replacing characters XML cannot carry with U+FFFD."""
    return escape(_XML_INVALID_CHARS.sub("\ufffd", text))


def _xml_attr(text: str) -> str:
    return quoteattr(_XML_INVALID_CHARS.sub("\ufffd", text))


def _with_trailing_newline(content: str) -> str:
    if content and not content.endswith("\n"):
        return content + "\n"
    return content


def render_text(root_name: str, files: list[FileInfo], tree: Optional[str] = None) -> str:
    """Render files as plain text with a `==> path <==` header per file."""
    parts: list[str] = []

    if tree is not None:
        parts.append(f"Directory structure:\n{tree}\n\n")

    for file_info in files:
        parts.append(f"==> {file_info.relative_path} <==\n")
        parts.append(_with_trailing_newline(file_info.content))
        parts.append("\n")

    return "".join(parts)


def render_markdown(root_name: str, files: list[FileInfo], tree: Optional[str] = None) -> str:
    """Render files as Markdown, one fenced code block per file."""
    parts = [f"# {root_name}\n\n"]

    if tree is not None:
        parts.append("## Directory structure\n\n```\n" + tree + "\n```\n\n")

    for file_info in files:
        fence = _fence_for(file_info.content)
        lang = "" if file_info.language == "text" else file_info.language
        parts.append(f"## {file_info.relative_path}\n\n")
        parts.append(f"{fence}{lang}\n")
        parts.append(_with_trailing_newline(file_info.content))
        parts.append(f"{fence}\n\n")

    return "".join(parts)


def render_xml(root_name: str, files: list[FileInfo], tree: Optional[str] = None) -> str:
    """Render files as an XML document with one `<file>` element per file."""
    parts = [f"<repository name={_xml_attr(root_name)}>\n"]

    if tree is not None:
        parts.append(f"<tree>\n{_xml_text(tree)}\n</tree>\n")

    for file_info in files:
        parts.append(
            f"<file path={_xml_attr(file_info.relative_path)} "
            f"language={_xml_attr(file_info.language)}>\n"
        )
        parts.append(_xml_text(_with_trailing_newline(file_info.content)))
        parts.append("</file>\n")

    parts.append("</repository>\n")
    return "".join(parts)


_RENDERERS = {
    OutputFormat.TEXT: render_text,
    OutputFormat.MARKDOWN: render_markdown,
    OutputFormat.XML: render_xml,
}


def render_dump(
    root_name: str,
    files: list[FileInfo],
    output_format: OutputFormat = OutputFormat.TEXT,
    tree: Optional[str] = None,
) -> str:
    """
    Render the complete dump document.

    Args:
        root_name: Name of the dumped directory
        files: Files with `content` already filled in, in output order
        output_format: Document layout
        tree: Optional pre-rendered directory tree to prepend

    Returns:
        The rendered document
    """
    return _RENDERERS[OutputFormat(output_format)](root_name, files, tree)


def write_output(text: str, output_path: Path) -> Path:
    """
    Write the rendered document to disk as UTF-8.

    Parent directories are created as needed.

    Returns:
        The resolved output path
    """
    output_path = output_path.resolve()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8", newline="\n") as f:
        f.write(text)
    return output_path


def write_report(report: dict[str, Any], report_path: Path) -> Path:
    """
    Write a dump report as pretty-printed JSON.

    Returns:
        The resolved report path
    """
    report_path = report_path.resolve()
    report_path.parent.mkdir(parents=True, exist_ok=True)
    with open(report_path, "w", encoding="utf-8", newline="\n") as f:
        json.dump(report, f, indent=2, ensure_ascii=False)
        f.write("\n")
    return report_path

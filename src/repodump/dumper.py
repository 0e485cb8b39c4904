"""
Dump pipeline for repodump.

Validates the target directory, scans it, reads the selected files and renders the
final document together with its token estimate.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape

from .config import DumpConfig, FileInfo, ScanStats
from .errors import RepodumpError
from .renderer import render_dump
from .scanner import SkipCallback, generate_tree, scan_directory
from .utils import estimate_tokens, normalize_line_endings, read_file_safe

console = Console(stderr=True)


@dataclass
class DumpResult:
    """Outcome of dumping a directory.

    Attributes:
        root: Resolved directory that was dumped.
        files: Files included in the document, in output order.
        stats: Scan and inclusion statistics.
        text: The rendered document.
        token_count: Estimated tokens for `text`.
    """

    root: Path
    files: list[FileInfo]
    stats: ScanStats
    text: str
    token_count: int

    def to_dict(
        self, config: DumpConfig, settings: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """Build the JSON report for `--report`.

        Args:
            config: Effective configuration the dump ran with
            settings: Values taken from the project config file, if any
        """
        return {
            "config": {
                "exclude_globs": sorted(config.exclude_globs),
                "format": config.output_format.value,
                "include_extensions": (
                    sorted(config.include_extensions)
                    if config.include_extensions is not None
                    else None
                ),
                "include_hidden": config.include_hidden,
                "max_file_bytes": config.max_file_bytes,
                "max_total_bytes": config.max_total_bytes,
                "respect_gitignore": config.respect_gitignore,
                "show_tree": config.show_tree,
                "tokenizer": config.tokenizer.value,
            },
            "config_file_settings": settings or {},
            "files": [f.to_dict() for f in self.files],
            "root": str(self.root),
            "stats": self.stats.to_dict(),
            "token_count": self.token_count,
        }


def validate_directory(path: Path) -> Path:
    """Validate and resolve the directory to dump.

    Args:
        path: Directory path to validate.

    Returns:
        Resolved absolute path to a readable directory.

    Raises:
        RepodumpError: If the path does not exist, is not a directory, or is not readable.
    """
    resolved = path.resolve()

    if not resolved.exists():
        raise RepodumpError(f"Path does not exist: {resolved}")

    if not resolved.is_dir():
        raise RepodumpError(f"Path is not a directory: {resolved}")

    if not os.access(resolved, os.R_OK | os.X_OK):
        raise RepodumpError(f"Path is not readable: {resolved}")

    return resolved


def dump_directory(config: DumpConfig, on_skip: Optional[SkipCallback] = None) -> DumpResult:
    """
    Dump a directory according to `config`.

    Files that cannot be read are reported as warnings and left out. Files that would
    push the total past `config.max_total_bytes` are dropped and counted in
    `stats.files_dropped_budget`; smaller files after them may still fit.

    Args:
        config: Dump settings
        on_skip: Optional callback notified of every skipped file and the reason

    Returns:
        DumpResult with the rendered document and statistics

    Raises:
        RepodumpError: If the directory is invalid or the tokenizer cannot be loaded.
    """
    root = validate_directory(config.root)

    files, stats = scan_directory(
        root_path=root,
        include_extensions=config.include_extensions,
        exclude_globs=config.exclude_globs,
        max_file_bytes=config.max_file_bytes,
        respect_gitignore=config.respect_gitignore,
        include_hidden=config.include_hidden,
        on_skip=on_skip,
    )

    included: list[FileInfo] = []
    total_bytes = 0

    for file_info in files:
        if config.max_total_bytes is not None and (
            total_bytes + file_info.size_bytes > config.max_total_bytes
        ):
            stats.files_dropped_budget += 1
            if on_skip is not None:
                on_skip(file_info.relative_path, "over --max-total-bytes budget")
            continue

        try:
            content, _ = read_file_safe(file_info.path)
        except OSError as e:
            console.print(
                f"[yellow]Warning: Failed to read {escape(file_info.relative_path)}: "
                f"{escape(str(e))}[/yellow]"
            )
            stats.files_skipped_unreadable += 1
            continue

        file_info.content = normalize_line_endings(content)
        file_info.token_estimate = estimate_tokens(file_info.content, config.tokenizer)
        total_bytes += file_info.size_bytes
        included.append(file_info)

    # Scanner counts are pre-read; correct them for what actually made it in
    stats.files_included = len(included)
    stats.total_bytes_included = total_bytes

    root_name = root.name or str(root)
    tree = None
    if config.show_tree:
        tree = generate_tree(root_name, [f.relative_path for f in included])

    text = render_dump(root_name, included, config.output_format, tree)
    token_count = estimate_tokens(text, config.tokenizer)
    stats.total_tokens_estimated = token_count

    return DumpResult(
        root=root,
        files=included,
        stats=stats,
        text=text,
        token_count=token_count,
    )

"""
File scanner module for repodump.

Discovers files in a directory, respects .gitignore, and filters by hidden status,
exclude globs, extension, size and binary content.
"""

from __future__ import annotations

import fnmatch
import os
from collections import defaultdict
from collections.abc import Callable
from pathlib import Path
from typing import Generator, Optional

import pathspec

from .config import (
    ALWAYS_SKIPPED_DIRS,
    DEFAULT_EXCLUDE_GLOBS,
    DEFAULT_MAX_FILE_BYTES,
    KNOWN_EXTENSIONLESS,
    FileInfo,
    ScanStats,
    get_language,
)
from .utils import is_binary_file, normalize_path

# Called with (relative_path, reason) for every skipped file
SkipCallback = Callable[[str, str], None]


class GitIgnoreParser:
    """
    Parser for .gitignore files.

    Supports nested .gitignore files in subdirectories.
    """

    def __init__(self, root_path: Path):
        """
        Initialize the parser.

        Args:
            root_path: Root directory being dumped
        """
        self.root_path = root_path.resolve()
        self._specs: dict[Path, pathspec.GitIgnoreSpec] = {}
        self._load_gitignores()

    def _load_gitignores(self) -> None:
        """Load all .gitignore files below the root."""
        for gitignore_path in sorted(self.root_path.rglob(".gitignore")):
            if any(part in ALWAYS_SKIPPED_DIRS for part in gitignore_path.parts):
                continue
            self._load_gitignore_file(gitignore_path, gitignore_path.parent)

    def _load_gitignore_file(self, gitignore_path: Path, base_path: Path) -> None:
        """Load a single .gitignore file."""
        try:
            with open(gitignore_path, "r", encoding="utf-8", errors="replace") as f:
                lines = f.read().splitlines()
        except OSError:
            return  # Unreadable .gitignore files are ignored

        patterns = [
            line.strip() for line in lines
            if line.strip() and not line.strip().startswith("#")
        ]

        if patterns:
            self._specs[base_path] = pathspec.GitIgnoreSpec.from_lines(patterns)

    def is_ignored(self, file_path: Path) -> bool:
        """
        Check if a path is ignored by any applicable .gitignore.

        Args:
            file_path: Absolute path to the file or directory

        Returns:
            True if the path should be ignored
        """
        file_path = file_path.resolve()
        is_dir = file_path.is_dir()

        # The most specific .gitignore with a matching pattern decides, so a
        # nested "!pattern" re-includes what a parent ignores
        for base_path, spec in sorted(
            self._specs.items(),
            key=lambda x: len(x[0].parts),
            reverse=True,
        ):
            try:
                rel_path = normalize_path(str(file_path.relative_to(base_path)))
            except ValueError:
                continue  # Not under this base path

            result = spec.check_file(rel_path + "/" if is_dir else rel_path)
            if result.include is None and is_dir:
                result = spec.check_file(rel_path)
            if result.include is not None:
                return result.include

        return False


class FileScanner:
    """
    Scans a directory for files to include in a dump.

    Handles filtering by hidden status, exclude globs, gitignore, extension, size and
    binary content.
    """

    def __init__(
        self,
        root_path: Path,
        include_extensions: Optional[set[str]] = None,
        exclude_globs: Optional[set[str]] = None,
        max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
        respect_gitignore: bool = True,
        include_hidden: bool = False,
        on_skip: Optional[SkipCallback] = None,
    ):
        """
        Initialize the scanner.

        Args:
            root_path: Root directory to scan
            include_extensions: Extensions to include (None includes every text file)
            exclude_globs: Glob patterns to exclude (None uses the defaults)
            max_file_bytes: Maximum file size in bytes
            respect_gitignore: Whether to respect .gitignore files
            include_hidden: Whether to walk dotfiles and dot-directories
            on_skip: Optional callback notified of every skipped file and the reason
        """
        self.root_path = root_path.resolve()
        self.include_extensions = include_extensions
        self.exclude_globs = (
            DEFAULT_EXCLUDE_GLOBS.copy() if exclude_globs is None else set(exclude_globs)
        )
        self.max_file_bytes = max_file_bytes
        self.respect_gitignore = respect_gitignore
        self.include_hidden = include_hidden
        self._on_skip = on_skip

        self._gitignore: Optional[GitIgnoreParser] = None
        if respect_gitignore:
            self._gitignore = GitIgnoreParser(self.root_path)

        # Sorted so the reported pattern is stable when several match
        self._exclude_patterns = sorted(self.exclude_globs)

        self.stats = ScanStats()
        self._ignored_pattern_counts: dict[str, int] = defaultdict(int)

    def _skip(self, rel_path: str, reason: str) -> None:
        if self._on_skip is not None:
            self._on_skip(rel_path, reason)

    def _matches_exclude_glob(self, rel_path: str) -> Optional[str]:
        """
        Check if a path matches any exclude glob pattern.

        Returns the matching pattern or None.
        """
        for pattern in self._exclude_patterns:
            if pattern.endswith("/**"):
                dir_pattern = pattern[:-3]
                parents = rel_path.split("/")[:-1]
                if rel_path.startswith(dir_pattern + "/"):
                    return pattern
                # Bare directory names match at any depth
                if "/" not in dir_pattern and any(
                    fnmatch.fnmatch(part, dir_pattern) for part in parents
                ):
                    return pattern
            elif fnmatch.fnmatch(rel_path, pattern):
                return pattern
            elif fnmatch.fnmatch(rel_path.rsplit("/", 1)[-1], pattern):
                return pattern

        return None

    def _should_include_extension(self, file_path: Path) -> bool:
        """Check if the file passes the extension filter."""
        if self.include_extensions is None:
            return True

        ext = file_path.suffix.lower()
        if not ext:
            return file_path.name.lower() in KNOWN_EXTENSIONLESS

        return ext in self.include_extensions

    def scan(self) -> Generator[FileInfo, None, None]:
        """
        Scan the directory and yield file information.

        Yields:
            FileInfo objects for each included file; within a directory, files come
            first (sorted by name), then each subdirectory in turn
        """
        for file_path in self._walk_files():
            self.stats.files_scanned += 1

            try:
                rel_path = normalize_path(str(file_path.relative_to(self.root_path)))
            except ValueError:
                continue

            matching_pattern = self._matches_exclude_glob(rel_path)
            if matching_pattern:
                self.stats.files_skipped_glob += 1
                self._ignored_pattern_counts[matching_pattern] += 1
                self._skip(rel_path, f"excluded by {matching_pattern}")
                continue

            if self._gitignore and self._gitignore.is_ignored(file_path):
                self.stats.files_skipped_gitignore += 1
                self._skip(rel_path, "gitignored")
                continue

            if not self._should_include_extension(file_path):
                self.stats.files_skipped_extension += 1
                self._skip(rel_path, "extension not included")
                continue

            try:
                size = file_path.stat().st_size
            except OSError:
                self.stats.files_skipped_unreadable += 1
                self._skip(rel_path, "unreadable")
                continue

            self.stats.total_bytes_scanned += size

            if size > self.max_file_bytes:
                self.stats.files_skipped_size += 1
                self._skip(rel_path, f"larger than {self.max_file_bytes:,} bytes")
                continue

            if is_binary_file(file_path):
                self.stats.files_skipped_binary += 1
                self._skip(rel_path, "binary")
                continue

            ext = file_path.suffix.lower()
            language = get_language(ext, file_path.name)

            self.stats.languages_detected[language] = (
                self.stats.languages_detected.get(language, 0) + 1
            )

            self.stats.files_included += 1
            self.stats.total_bytes_included += size

            yield FileInfo(
                path=file_path,
                relative_path=rel_path,
                size_bytes=size,
                extension=ext,
                language=language,
            )

        self.stats.top_ignored_patterns = dict(self._ignored_pattern_counts)

    def _walk_files(self) -> Generator[Path, None, None]:
        """
        Walk the directory depth-first in sorted order and yield file paths.

        Uses os.scandir for efficiency. Symlinks are never followed.
        """
        # Stack of directories; children are pushed in reverse so output stays sorted
        dirs_to_process = [self.root_path]

        while dirs_to_process:
            current_dir = dirs_to_process.pop()

            try:
                with os.scandir(current_dir) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except OSError:
                continue

            files: list[Path] = []
            subdirs: list[Path] = []

            for entry in entries:
                try:
                    if entry.is_symlink():
                        continue

                    entry_path = Path(entry.path)
                    hidden = entry.name.startswith(".")

                    if entry.is_dir():
                        if entry.name in ALWAYS_SKIPPED_DIRS:
                            continue
                        if hidden and not self.include_hidden:
                            continue
                        if self._gitignore and self._gitignore.is_ignored(entry_path):
                            continue
                        subdirs.append(entry_path)

                    elif entry.is_file():
                        if hidden and not self.include_hidden:
                            self.stats.files_scanned += 1
                            self.stats.files_skipped_hidden += 1
                            continue
                        files.append(entry_path)

                except OSError:
                    continue

            # Files in a directory come before its subdirectories
            yield from files
            dirs_to_process.extend(reversed(subdirs))


def scan_directory(
    root_path: Path,
    include_extensions: Optional[set[str]] = None,
    exclude_globs: Optional[set[str]] = None,
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
    respect_gitignore: bool = True,
    include_hidden: bool = False,
    on_skip: Optional[SkipCallback] = None,
) -> tuple[list[FileInfo], ScanStats]:
    """
    Convenience function to scan a directory.

    Returns:
        Tuple of (list of FileInfo, ScanStats)
    """
    scanner = FileScanner(
        root_path=root_path,
        include_extensions=include_extensions,
        exclude_globs=exclude_globs,
        max_file_bytes=max_file_bytes,
        respect_gitignore=respect_gitignore,
        include_hidden=include_hidden,
        on_skip=on_skip,
    )

    files = list(scanner.scan())
    return files, scanner.stats


def generate_tree(root_name: str, relative_paths: list[str]) -> str:
    """
    Generate a directory tree of the given files.

    Args:
        root_name: Name shown on the first line
        relative_paths: Forward-slash paths relative to the root

    Returns:
        String representation of the directory tree
    """
    tree: dict = {}
    for rel_path in relative_paths:
        node = tree
        for part in rel_path.split("/"):
            node = node.setdefault(part, {})

    lines = [root_name.rstrip("/") + "/"]

    def _walk(node: dict, prefix: str) -> None:
        # Directories first, then files, each alphabetically
        names = sorted(node, key=lambda n: (not node[n], n))
        for i, name in enumerate(names):
            is_last = i == len(names) - 1
            connector = "└── " if is_last else "├── "
            children = node[name]
            if children:
                lines.append(f"{prefix}{connector}{name}/")
                _walk(children, prefix + ("    " if is_last else "│   "))
            else:
                lines.append(f"{prefix}{connector}{name}")

    _walk(tree, "")
    return "\n".join(lines)

"""
Configuration models and defaults for repodump.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class OutputFormat(str, Enum):
    """Layout of the rendered dump."""

    TEXT = "text"
    MARKDOWN = "markdown"
    XML = "xml"


class Tokenizer(str, Enum):
    """Strategy used to estimate token counts."""

    CHARS = "chars"
    TIKTOKEN = "tiktoken"


# Directories that are never descended into, even with --hidden
ALWAYS_SKIPPED_DIRS: set[str] = {".git", ".hg", ".svn"}

# Default glob patterns to exclude
DEFAULT_EXCLUDE_GLOBS: set[str] = {
    # Dependencies
    "node_modules/**",
    ".venv/**",
    "venv/**",
    "__pycache__/**",
    ".tox/**",
    ".nox/**",
    ".eggs/**",
    "*.egg-info/**",
    # Cache
    ".cache/**",
    ".pytest_cache/**",
    ".mypy_cache/**",
    ".ruff_cache/**",
    "*.pyc",
    # Editor leftovers
    "*.swp",
    "*.swo",
    ".DS_Store",
    "Thumbs.db",
    # Lock files are large and add little for a reader
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "poetry.lock",
    "Cargo.lock",
    # Minified bundles
    "*.min.js",
    "*.min.css",
    "*.map",
}

# Extensionless files that are still considered text when an extension filter is active
KNOWN_EXTENSIONLESS: set[str] = {
    "makefile",
    "dockerfile",
    "rakefile",
    "gemfile",
    "procfile",
    "vagrantfile",
    "jenkinsfile",
    "license",
    "readme",
}

DEFAULT_MAX_FILE_BYTES = 1_048_576  # 1 MB


@dataclass
class DumpConfig:
    """Everything needed to produce one dump.

    Attributes:
        root: Directory to dump.
        include_extensions: Extensions to include, or None to include every text file.
        exclude_globs: Glob patterns (relative to `root`) to skip.
        max_file_bytes: Files larger than this are skipped.
        max_total_bytes: Stop adding files once this many bytes are included (None = no cap).
        respect_gitignore: Whether `.gitignore` rules should be applied.
        include_hidden: Whether dotfiles and dot-directories are walked.
        output_format: Layout of the rendered document.
        show_tree: Prepend a directory tree to the document.
        tokenizer: Token estimation strategy.
    """

    root: Path = field(default_factory=lambda: Path("."))
    include_extensions: set[str] | None = None
    exclude_globs: set[str] = field(default_factory=lambda: DEFAULT_EXCLUDE_GLOBS.copy())
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES
    max_total_bytes: int | None = None
    respect_gitignore: bool = True
    include_hidden: bool = False
    output_format: OutputFormat = OutputFormat.TEXT
    show_tree: bool = False
    tokenizer: Tokenizer = Tokenizer.CHARS

    def __post_init__(self) -> None:
        """Normalize paths and extensions.

        Raises:
            ValueError: If a size limit is negative.
        """
        self.root = Path(self.root).resolve()

        if self.max_file_bytes < 0:
            raise ValueError(f"max_file_bytes must be >= 0, got {self.max_file_bytes}")
        if self.max_total_bytes is not None and self.max_total_bytes < 0:
            raise ValueError(f"max_total_bytes must be >= 0, got {self.max_total_bytes}")

        if self.include_extensions is not None:
            self.include_extensions = {
                (ext if ext.startswith(".") else f".{ext}").lower()
                for ext in self.include_extensions
            }

        self.output_format = OutputFormat(self.output_format)
        self.tokenizer = Tokenizer(self.tokenizer)


@dataclass
class FileInfo:
    """A file selected for the dump.

    Attributes:
        path: Absolute path to the file on disk.
        relative_path: Path relative to the dump root, using forward slashes.
        size_bytes: File size in bytes.
        extension: Lowercased extension including the leading dot (may be empty).
        language: Language label used for Markdown fences.
        content: Decoded text, filled in by the dumper.
        token_estimate: Estimated tokens for `content`.
    """

    path: Path
    relative_path: str
    size_bytes: int
    extension: str
    language: str
    content: str = ""
    token_estimate: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.relative_path,
            "extension": self.extension,
            "language": self.language,
            "size_bytes": self.size_bytes,
            "token_estimate": self.token_estimate,
        }


@dataclass
class ScanStats:
    """Statistics from scanning and dumping a directory."""

    files_scanned: int = 0
    files_included: int = 0
    files_skipped_size: int = 0
    files_skipped_binary: int = 0
    files_skipped_extension: int = 0
    files_skipped_gitignore: int = 0
    files_skipped_glob: int = 0
    files_skipped_hidden: int = 0
    files_skipped_unreadable: int = 0
    files_dropped_budget: int = 0
    total_bytes_scanned: int = 0
    total_bytes_included: int = 0
    total_tokens_estimated: int = 0
    languages_detected: dict[str, int] = field(default_factory=dict)
    top_ignored_patterns: dict[str, int] = field(default_factory=dict)

    @property
    def files_skipped(self) -> int:
        return (
            self.files_skipped_size
            + self.files_skipped_binary
            + self.files_skipped_extension
            + self.files_skipped_gitignore
            + self.files_skipped_glob
            + self.files_skipped_hidden
            + self.files_skipped_unreadable
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary with deterministic ordering."""
        return {
            "files_dropped_budget": self.files_dropped_budget,
            "files_included": self.files_included,
            "files_scanned": self.files_scanned,
            "files_skipped": {
                "binary": self.files_skipped_binary,
                "extension": self.files_skipped_extension,
                "gitignore": self.files_skipped_gitignore,
                "glob": self.files_skipped_glob,
                "hidden": self.files_skipped_hidden,
                "size": self.files_skipped_size,
                "unreadable": self.files_skipped_unreadable,
            },
            "languages_detected": dict(
                sorted(self.languages_detected.items(), key=lambda x: (-x[1], x[0]))
            ),
            "top_ignored_patterns": dict(
                sorted(self.top_ignored_patterns.items(), key=lambda x: (-x[1], x[0]))[:10]
            ),
            "total_bytes_included": self.total_bytes_included,
            "total_bytes_scanned": self.total_bytes_scanned,
            "total_tokens_estimated": self.total_tokens_estimated,
        }


# Language labels for Markdown code fences
EXTENSION_TO_LANGUAGE: dict[str, str] = {
    ".py": "python",
    ".pyi": "python",
    ".js": "javascript",
    ".jsx": "jsx",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".go": "go",
    ".java": "java",
    ".kt": "kotlin",
    ".rs": "rust",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cc": "cpp",
    ".cs": "csharp",
    ".rb": "ruby",
    ".php": "php",
    ".swift": "swift",
    ".scala": "scala",
    ".sh": "bash",
    ".bash": "bash",
    ".zsh": "zsh",
    ".md": "markdown",
    ".rst": "rst",
    ".txt": "text",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".json": "json",
    ".ini": "ini",
    ".cfg": "ini",
    ".xml": "xml",
    ".html": "html",
    ".css": "css",
    ".scss": "scss",
    ".sql": "sql",
    ".graphql": "graphql",
    ".proto": "protobuf",
}


def get_language(extension: str, filename: str = "") -> str:
    """Get a language label from a file extension or special filename.

    Args:
        extension: File extension including the leading dot.
        filename: Filename used for extensionless special cases like `Dockerfile`.

    Returns:
        A language label (e.g., `"python"`), `"text"` when unknown.
    """
    ext_lower = extension.lower()
    if ext_lower in EXTENSION_TO_LANGUAGE:
        return EXTENSION_TO_LANGUAGE[ext_lower]

    name_lower = filename.lower()
    if name_lower == "dockerfile":
        return "dockerfile"
    if name_lower == "makefile":
        return "makefile"
    if name_lower in {"rakefile", "gemfile", "vagrantfile"}:
        return "ruby"

    return "text"

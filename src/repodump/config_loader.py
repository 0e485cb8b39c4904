"""
Configuration file loader for repodump.

Supports loading configuration from the dumped directory:
- repodump.toml / .repodump.toml
- .repodump.yml / .repodump.yaml

CLI flags override config file values.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console
from rich.markup import escape

from .config import (
    DEFAULT_EXCLUDE_GLOBS,
    DEFAULT_MAX_FILE_BYTES,
    DumpConfig,
    OutputFormat,
    Tokenizer,
)
from .errors import ConfigError

console = Console(stderr=True)

# Config file search order (first found wins)
CONFIG_FILE_NAMES = [
    "repodump.toml",
    ".repodump.toml",
    ".repodump.yml",
    ".repodump.yaml",
]

# Name of the optional section wrapping the settings
CONFIG_SECTION = "repodump"


@dataclass
class ProjectConfig:
    """
    Project-level configuration loaded from a config file.

    All fields are optional - CLI flags will override any values set here.
    """

    include_extensions: set[str] | None = None
    exclude_globs: set[str] | None = None
    max_file_bytes: int | None = None
    max_total_bytes: int | None = None
    respect_gitignore: bool | None = None
    include_hidden: bool | None = None
    output_format: OutputFormat | None = None
    show_tree: bool | None = None
    tokenizer: Tokenizer | None = None

    # Source file path (for --verbose)
    config_file: Path | None = field(default=None, repr=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert the set values to a dictionary with sorted keys and lists."""
        result: dict[str, Any] = {}

        if self.include_extensions is not None:
            result["include_extensions"] = sorted(self.include_extensions)
        if self.exclude_globs is not None:
            result["exclude_globs"] = sorted(self.exclude_globs)
        for name in (
            "max_file_bytes",
            "max_total_bytes",
            "respect_gitignore",
            "include_hidden",
            "show_tree",
        ):
            value = getattr(self, name)
            if value is not None:
                result[name] = value
        if self.output_format is not None:
            result["format"] = self.output_format.value
        if self.tokenizer is not None:
            result["tokenizer"] = self.tokenizer.value

        return dict(sorted(result.items()))


def find_config_file(root: Path) -> Path | None:
    """
    Find a configuration file in the dumped directory.

    Args:
        root: Directory being dumped

    Returns:
        Path to the config file, or None if not found
    """
    for name in CONFIG_FILE_NAMES:
        config_path = root / name
        if config_path.is_file():
            return config_path
    return None


def _unwrap_section(data: Any) -> dict[str, Any]:
    """Accept both flat keys and a `[repodump]` section."""
    if not isinstance(data, dict):
        return {}
    section = data.get(CONFIG_SECTION)
    if isinstance(section, dict):
        return dict(section)
    return dict(data)


def _parse_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return _unwrap_section(tomllib.load(f))


def _parse_yaml(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        return _unwrap_section(yaml.safe_load(f))


def _normalize_extensions(extensions: Any) -> set[str] | None:
    """Normalize extension input to a set of dot-prefixed, lowercased extensions.

    Args:
        extensions: Comma-separated string, list, set, or None.

    Returns:
        A set like `{".py", ".md"}` or None if unset/empty.
    """
    if extensions is None:
        return None

    if isinstance(extensions, str):
        extensions = extensions.split(",")

    if not isinstance(extensions, (list, set, tuple)):
        raise ConfigError(f"Expected a list of extensions, got {extensions!r}")

    result = set()
    for ext in extensions:
        ext = str(ext).strip().lower()
        if ext:
            result.add(ext if ext.startswith(".") else f".{ext}")

    return result or None


def _normalize_globs(globs: Any) -> set[str] | None:
    """Normalize glob input (comma-separated string or list) to a set of patterns."""
    if globs is None:
        return None

    if isinstance(globs, str):
        globs = globs.split(",")

    if not isinstance(globs, (list, set, tuple)):
        raise ConfigError(f"Expected a list of glob patterns, got {globs!r}")

    result = {str(g).strip() for g in globs if str(g).strip()}
    return result or None


def _require_bool(data: dict[str, Any], key: str) -> bool:
    """Return a boolean setting, rejecting strings such as "false"."""
    value = data[key]
    if not isinstance(value, bool):
        raise ConfigError(f"Expected true or false for '{key}', got {value!r}")
    return value


def _build_project_config(data: dict[str, Any], config_path: Path) -> ProjectConfig:
    config = ProjectConfig(config_file=config_path)

    config.include_extensions = _normalize_extensions(
        data.get("include_extensions", data.get("include_ext"))
    )
    config.exclude_globs = _normalize_globs(data.get("exclude_globs", data.get("exclude_glob")))

    try:
        if "max_file_bytes" in data:
            config.max_file_bytes = int(data["max_file_bytes"])
        if "max_total_bytes" in data:
            config.max_total_bytes = int(data["max_total_bytes"])
        if "format" in data:
            config.output_format = OutputFormat(str(data["format"]).lower())
        if "tokenizer" in data:
            config.tokenizer = Tokenizer(str(data["tokenizer"]).lower())
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value in {config_path}: {e}") from e

    if "respect_gitignore" in data:
        config.respect_gitignore = _require_bool(data, "respect_gitignore")
    if "hidden" in data:
        config.include_hidden = _require_bool(data, "hidden")
    if "tree" in data:
        config.show_tree = _require_bool(data, "tree")

    return config


def load_config(root: Path, config_path: Path | None = None) -> ProjectConfig:
    """
    Load configuration from a config file.

    An explicitly given file must exist and parse. A file discovered in `root` that
    fails to parse is reported as a warning and ignored.

    Args:
        root: Directory being dumped
        config_path: Explicit path to a config file (optional)

    Returns:
        ProjectConfig with loaded values (unset values remain None).

    Raises:
        ConfigError: If an explicit config file is missing, unsupported or invalid.
    """
    explicit = config_path is not None
    if config_path is None:
        config_path = find_config_file(root)
        if config_path is None:
            return ProjectConfig()
    elif not config_path.is_file():
        raise ConfigError(f"Config file does not exist: {config_path}")

    suffix = config_path.suffix.lower()
    try:
        if suffix == ".toml":
            data = _parse_toml(config_path)
        elif suffix in (".yml", ".yaml"):
            data = _parse_yaml(config_path)
        else:
            raise ConfigError(f"Unsupported config file type: {config_path}")
        return _build_project_config(data, config_path)
    except (
        OSError,
        UnicodeDecodeError,
        tomllib.TOMLDecodeError,
        yaml.YAMLError,
        ConfigError,
    ) as e:
        if explicit:
            if isinstance(e, ConfigError):
                raise
            raise ConfigError(f"Failed to parse {config_path}: {e}") from e
        console.print(
            f"[yellow]Warning: Ignoring config file "
            f"{escape(str(config_path))}: {escape(str(e))}[/yellow]"
        )
        return ProjectConfig()


def merge_cli_with_config(
    config: ProjectConfig,
    root: Path,
    *,
    # CLI arguments (None means not specified on CLI)
    include_ext: str | None = None,
    exclude_glob: str | None = None,
    max_file_bytes: int | None = None,
    max_total_bytes: int | None = None,
    respect_gitignore: bool | None = None,
    include_hidden: bool | None = None,
    output_format: OutputFormat | None = None,
    show_tree: bool | None = None,
    tokenizer: Tokenizer | None = None,
) -> DumpConfig:
    """Merge CLI arguments with config file values (CLI wins, then file, then defaults).

    Exclude globs are additive: defaults, file and CLI patterns all apply.

    Returns:
        The DumpConfig used by the dump pipeline.

    Raises:
        ConfigError: If the merged values are invalid.
    """

    def pick(cli_value: Any, file_value: Any, default: Any) -> Any:
        if cli_value is not None:
            return cli_value
        if file_value is not None:
            return file_value
        return default

    cli_extensions = _normalize_extensions(include_ext) if include_ext else None

    exclude_globs = DEFAULT_EXCLUDE_GLOBS.copy()
    exclude_globs |= config.exclude_globs or set()
    exclude_globs |= _normalize_globs(exclude_glob) or set()

    try:
        return DumpConfig(
            root=root,
            include_extensions=pick(cli_extensions, config.include_extensions, None),
            exclude_globs=exclude_globs,
            max_file_bytes=pick(max_file_bytes, config.max_file_bytes, DEFAULT_MAX_FILE_BYTES),
            max_total_bytes=pick(max_total_bytes, config.max_total_bytes, None),
            respect_gitignore=pick(respect_gitignore, config.respect_gitignore, True),
            include_hidden=pick(include_hidden, config.include_hidden, False),
            output_format=pick(output_format, config.output_format, OutputFormat.TEXT),
            show_tree=pick(show_tree, config.show_tree, False),
            tokenizer=pick(tokenizer, config.tokenizer, Tokenizer.CHARS),
        )
    except ValueError as e:
        raise ConfigError(str(e)) from e

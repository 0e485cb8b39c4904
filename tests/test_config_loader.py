"""Tests for the config_loader module."""

import pytest

from repodump.config import DEFAULT_EXCLUDE_GLOBS, OutputFormat, Tokenizer
from repodump.config_loader import (
    ProjectConfig,
    find_config_file,
    load_config,
    merge_cli_with_config,
)
from repodump.errors import ConfigError


class TestFindConfigFile:
    """Tests for config discovery."""

    def test_no_config(self, tmp_path):
        assert find_config_file(tmp_path) is None

    def test_toml_wins_over_yaml(self, tmp_path):
        (tmp_path / ".repodump.yml").write_text("tree: true\n")
        (tmp_path / "repodump.toml").write_text("tree = true\n")

        assert find_config_file(tmp_path) == tmp_path / "repodump.toml"


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_config_returns_empty(self, tmp_path):
        config = load_config(tmp_path)

        assert config == ProjectConfig()

    def test_toml_section(self, tmp_path):
        (tmp_path / "repodump.toml").write_text(
            "[repodump]\n"
            'format = "markdown"\n'
            "tree = true\n"
            'include_extensions = ["py", ".MD"]\n'
            'exclude_globs = ["docs/**"]\n'
            "max_file_bytes = 2048\n"
            'tokenizer = "chars"\n'
        )

        config = load_config(tmp_path)

        assert config.output_format is OutputFormat.MARKDOWN
        assert config.show_tree is True
        assert config.include_extensions == {".py", ".md"}
        assert config.exclude_globs == {"docs/**"}
        assert config.max_file_bytes == 2048
        assert config.tokenizer is Tokenizer.CHARS
        assert config.config_file == tmp_path / "repodump.toml"

    def test_flat_yaml(self, tmp_path):
        (tmp_path / ".repodump.yaml").write_text(
            "format: xml\nhidden: true\nrespect_gitignore: false\ninclude_ext: py,js\n"
        )

        config = load_config(tmp_path)

        assert config.output_format is OutputFormat.XML
        assert config.include_hidden is True
        assert config.respect_gitignore is False
        assert config.include_extensions == {".py", ".js"}

    def test_broken_discovered_file_is_ignored(self, tmp_path):
        (tmp_path / "repodump.toml").write_text("this is = = not toml")

        assert load_config(tmp_path) == ProjectConfig()

    def test_undecodable_discovered_toml_is_ignored(self, tmp_path):
        (tmp_path / "repodump.toml").write_bytes(b'format = "\xff"\n')

        assert load_config(tmp_path) == ProjectConfig()

    def test_undecodable_discovered_yaml_is_ignored(self, tmp_path):
        (tmp_path / ".repodump.yml").write_bytes(b"format: \xff\n")

        assert load_config(tmp_path) == ProjectConfig()

    def test_undecodable_explicit_file_raises(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_bytes(b'format = "\xff"\n')

        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path, path)

        assert "Failed to parse" in str(exc_info.value)

    def test_string_boolean_in_explicit_file_raises(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_text('tree = "false"\n')

        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path, path)

        assert "'tree'" in str(exc_info.value)

    @pytest.mark.parametrize("key", ["tree", "hidden", "respect_gitignore"])
    def test_string_boolean_in_discovered_file_is_ignored(self, tmp_path, key):
        (tmp_path / ".repodump.yml").write_text(f'{key}: "false"\n')

        assert load_config(tmp_path) == ProjectConfig()

    def test_invalid_value_in_discovered_file_is_ignored(self, tmp_path):
        (tmp_path / "repodump.toml").write_text('format = "pdf"\n')

        assert load_config(tmp_path) == ProjectConfig()

    def test_explicit_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path, tmp_path / "nope.toml")

        assert "does not exist" in str(exc_info.value)

    def test_explicit_broken_file_raises(self, tmp_path):
        path = tmp_path / "custom.yml"
        path.write_text("format: [unclosed\n")

        with pytest.raises(ConfigError):
            load_config(tmp_path, path)

    def test_explicit_unsupported_suffix_raises(self, tmp_path):
        path = tmp_path / "custom.ini"
        path.write_text("[repodump]\n")

        with pytest.raises(ConfigError):
            load_config(tmp_path, path)

    def test_to_dict_only_includes_set_values(self, tmp_path):
        config = ProjectConfig(show_tree=True, output_format=OutputFormat.MARKDOWN)

        assert config.to_dict() == {"format": "markdown", "show_tree": True}


class TestMergeCliWithConfig:
    """Tests for merge_cli_with_config."""

    def test_defaults(self, tmp_path):
        merged = merge_cli_with_config(ProjectConfig(), tmp_path)

        assert merged.root == tmp_path.resolve()
        assert merged.include_extensions is None
        assert merged.exclude_globs == DEFAULT_EXCLUDE_GLOBS
        assert merged.max_total_bytes is None
        assert merged.respect_gitignore is True
        assert merged.include_hidden is False
        assert merged.output_format is OutputFormat.TEXT
        assert merged.show_tree is False
        assert merged.tokenizer is Tokenizer.CHARS

    def test_cli_wins_over_file(self, tmp_path):
        file_config = ProjectConfig(
            output_format=OutputFormat.XML,
            show_tree=True,
            max_file_bytes=10,
            include_extensions={".md"},
        )

        merged = merge_cli_with_config(
            file_config,
            tmp_path,
            output_format=OutputFormat.MARKDOWN,
            show_tree=False,
            include_ext="py",
        )

        assert merged.output_format is OutputFormat.MARKDOWN
        assert merged.show_tree is False
        assert merged.max_file_bytes == 10
        assert merged.include_extensions == {".py"}

    def test_exclude_globs_are_additive(self, tmp_path):
        file_config = ProjectConfig(exclude_globs={"docs/**"})

        merged = merge_cli_with_config(file_config, tmp_path, exclude_glob="*.csv, build/**")

        assert {"docs/**", "*.csv", "build/**"} <= merged.exclude_globs
        assert DEFAULT_EXCLUDE_GLOBS <= merged.exclude_globs

    def test_negative_limit_raises_config_error(self, tmp_path):
        with pytest.raises(ConfigError):
            merge_cli_with_config(ProjectConfig(max_total_bytes=-1), tmp_path)

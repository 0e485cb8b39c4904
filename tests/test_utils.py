"""Tests for the utils module."""

from unittest.mock import patch

import pytest

from repodump import utils
from repodump.config import Tokenizer
from repodump.errors import TokenizerError
from repodump.utils import (
    detect_encoding,
    estimate_tokens,
    is_binary_file,
    normalize_line_endings,
    normalize_path,
    read_file_safe,
)


class TestEstimateTokens:
    """Tests for token estimation."""

    def test_empty_text(self):
        assert estimate_tokens("") == 0

    def test_chars_heuristic_rounds_up(self):
        """Test the ~4 characters per token heuristic."""
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2
        assert estimate_tokens("Hello") == 2

    def test_accepts_string_tokenizer_name(self):
        assert estimate_tokens("x" * 40, "chars") == 10

    def test_unknown_tokenizer_rejected(self):
        with pytest.raises(ValueError):
            estimate_tokens("text", "words")

    def test_tiktoken_uses_encoder(self):
        """Test that the tiktoken strategy counts encoder tokens."""

        class FakeEncoder:
            def encode(self, text, disallowed_special=()):
                return text.split()

        with patch.object(utils, "_get_tiktoken_encoder", return_value=FakeEncoder()):
            assert estimate_tokens("one two three", Tokenizer.TIKTOKEN) == 3

    def test_tiktoken_load_failure_raises(self):
        """Test that a missing encoding surfaces as TokenizerError."""
        utils._get_tiktoken_encoder.cache_clear()
        try:
            with patch.object(utils.tiktoken, "get_encoding", side_effect=OSError("offline")):
                with pytest.raises(TokenizerError) as exc_info:
                    estimate_tokens("text", Tokenizer.TIKTOKEN)
            assert "offline" in str(exc_info.value)
        finally:
            utils._get_tiktoken_encoder.cache_clear()


class TestBinaryDetection:
    """Tests for is_binary_file."""

    def test_text_file(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("Hello\nWorld\n")
        assert not is_binary_file(path)

    def test_empty_file_is_text(self, tmp_path):
        path = tmp_path / "empty"
        path.write_bytes(b"")
        assert not is_binary_file(path)

    def test_null_bytes_are_binary(self, tmp_path):
        path = tmp_path / "data.bin"
        path.write_bytes(b"abc\x00def")
        assert is_binary_file(path)

    def test_non_ascii_utf8_is_text(self, tmp_path):
        """Test that UTF-8 text in non-Latin scripts is not mistaken for binary."""
        path = tmp_path / "ru.txt"
        path.write_text("Привет, мир! " * 50, encoding="utf-8")
        assert not is_binary_file(path)

    def test_utf16_with_bom_is_text(self, tmp_path):
        path = tmp_path / "u16.txt"
        path.write_text("Hello", encoding="utf-16")
        assert not is_binary_file(path)

    def test_missing_file_is_binary(self, tmp_path):
        assert is_binary_file(tmp_path / "missing")


class TestReadFileSafe:
    """Tests for encoding detection and reading."""

    def test_reads_utf8(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("héllo", encoding="utf-8")

        content, encoding = read_file_safe(path)

        assert content == "héllo"
        assert encoding == "utf-8"

    def test_reads_utf16_with_bom(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("Hello", encoding="utf-16")

        content, encoding = read_file_safe(path)

        assert content == "Hello"
        assert encoding == "utf-16"

    def test_non_utf8_does_not_raise(self, tmp_path):
        path = tmp_path / "latin.txt"
        path.write_bytes("café au lait, crème brûlée".encode("latin-1"))

        content, _ = read_file_safe(path)

        assert content.startswith("caf")
        assert "au lait" in content

    def test_missing_file_raises_oserror(self, tmp_path):
        with pytest.raises(OSError):
            read_file_safe(tmp_path / "missing.txt")

    def test_detect_encoding_bom(self, tmp_path):
        path = tmp_path / "bom.txt"
        path.write_bytes(b"\xef\xbb\xbfhello")
        assert detect_encoding(path) == "utf-8-sig"


class TestNormalization:
    """Tests for path and line ending helpers."""

    def test_normalize_line_endings(self):
        assert normalize_line_endings("a\r\nb\rc\n") == "a\nb\nc\n"

    def test_normalize_path(self):
        assert normalize_path("src\\pkg\\mod.py") == "src/pkg/mod.py"

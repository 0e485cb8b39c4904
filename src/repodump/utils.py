"""
Utility functions for repodump.

Includes token estimation, encoding detection, binary detection and line ending
normalization.
"""

from __future__ import annotations

import math
from functools import lru_cache
from pathlib import Path
from typing import Any

import chardet
import tiktoken

from .config import Tokenizer
from .errors import TokenizerError

# Encoding used for the `tiktoken` strategy
TIKTOKEN_ENCODING = "cl100k_base"

# Average characters per token for the `chars` strategy
CHARS_PER_TOKEN = 4


@lru_cache(maxsize=1)
def _get_tiktoken_encoder() -> Any:
    """Load the tiktoken encoding once per process.

    Raises:
        TokenizerError: If the encoding files cannot be loaded (e.g. no network on
            first use and no local cache).
    """
    try:
        return tiktoken.get_encoding(TIKTOKEN_ENCODING)
    except Exception as e:
        raise TokenizerError(
            f"Could not load tiktoken encoding '{TIKTOKEN_ENCODING}': {e}. "
            "Use --tokenizer chars to estimate without it."
        ) from e


def estimate_tokens(text: str, tokenizer: Tokenizer | str = Tokenizer.CHARS) -> int:
    """Estimate the token count for a string.

    Args:
        text: Input text.
        tokenizer: `chars` for the ~4 characters/token heuristic, `tiktoken` for an
            exact `cl100k_base` count.

    Returns:
        Estimated number of tokens in `text`.

    Raises:
        TokenizerError: If the tiktoken encoding cannot be loaded.
    """
    if not text:
        return 0

    if Tokenizer(tokenizer) is Tokenizer.TIKTOKEN:
        encoder = _get_tiktoken_encoder()
        return len(encoder.encode(text, disallowed_special=()))

    return math.ceil(len(text) / CHARS_PER_TOKEN)


def detect_encoding(file_path: Path, sample_size: int = 8192) -> str:
    """Detect a likely text encoding for a file.

    Prefers UTF-8 and only asks `chardet` when strict UTF-8 decoding fails, so that
    UTF-8 is not misdetected as Latin-1/CP1252.

    Args:
        file_path: Path to the file to inspect.
        sample_size: Number of bytes to sample from the start of the file.

    Returns:
        A normalized encoding label (e.g., `"utf-8"`, `"utf-8-sig"`, `"utf-16"`).
    """
    try:
        with open(file_path, "rb") as f:
            sample = f.read(sample_size)
    except OSError:
        return "utf-8"

    if not sample:
        return "utf-8"

    # BOM markers first
    if sample.startswith(b"\xef\xbb\xbf"):
        return "utf-8-sig"
    if sample.startswith((b"\xff\xfe", b"\xfe\xff")):
        return "utf-16"

    try:
        sample.decode("utf-8")
        return "utf-8"
    except UnicodeDecodeError:
        pass

    result = chardet.detect(sample)
    encoding_any = result.get("encoding")

    if not isinstance(encoding_any, str) or not encoding_any:
        return "utf-8"

    encoding = encoding_any.lower()
    if encoding in ("ascii", "utf-8", "utf8"):
        return "utf-8"

    return encoding


def is_binary_file(file_path: Path, sample_size: int = 8192) -> bool:
    """Heuristically determine whether a file is binary.

    A null byte is a strong binary signal; otherwise the ratio of printable bytes
    decides. Files with a UTF BOM are treated as text. Unreadable files count as
    binary.

    Args:
        file_path: Path to the file to test.
        sample_size: Number of bytes to sample from the file start.

    Returns:
        True if the file is likely binary, otherwise False.
    """
    try:
        with open(file_path, "rb") as f:
            sample = f.read(sample_size)
    except OSError:
        return True

    if not sample:
        return False

    if sample.startswith((b"\xef\xbb\xbf", b"\xff\xfe", b"\xfe\xff")):
        return False

    if b"\x00" in sample:
        return True

    # Valid UTF-8 is text even when it is mostly non-ASCII
    try:
        sample.decode("utf-8")
        return False
    except UnicodeDecodeError as e:
        # A multi-byte sequence cut off by the sample boundary is still text
        if e.start >= len(sample) - 3 and e.reason == "unexpected end of data":
            return False

    printable_count = sum(
        1
        for b in sample
        if 32 <= b <= 126 or b in (9, 10, 13) or b >= 128
    )

    return printable_count / len(sample) < 0.70


def read_file_safe(file_path: Path, encoding: str | None = None) -> tuple[str, str]:
    """Read a file robustly with encoding detection.

    Strategy:
    - If `encoding` is provided, use it.
    - Otherwise try strict UTF-8 first.
    - If that fails, detect the encoding and decode with `errors="replace"`.

    Args:
        file_path: Path to the file to read.
        encoding: Optional explicit encoding (None enables auto-detection).

    Returns:
        A tuple `(content, encoding_used)`.

    Raises:
        OSError: If the file cannot be read at all.
    """
    if encoding is not None:
        try:
            with open(file_path, encoding=encoding, errors="replace") as f:
                return f.read(), encoding
        except LookupError:
            # Unknown encoding name, fall through to auto-detect
            pass

    try:
        with open(file_path, encoding="utf-8", errors="strict") as f:
            return f.read(), "utf-8"
    except UnicodeDecodeError:
        pass

    detected = detect_encoding(file_path)
    try:
        with open(file_path, encoding=detected, errors="replace") as f:
            return f.read(), detected
    except LookupError:
        with open(file_path, encoding="utf-8", errors="replace") as f:
            return f.read(), "utf-8"


def normalize_path(path: str) -> str:
    """Normalize a path to forward slashes for cross-platform comparisons."""
    return path.replace("\\", "/")


def normalize_line_endings(content: str) -> str:
    """Normalize CRLF and CR line endings to LF."""
    # CRLF first, so it is not turned into two newlines
    return content.replace("\r\n", "\n").replace("\r", "\n")

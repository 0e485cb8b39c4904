"""
repodump: Extract and format directory contents for LLMs.

Walks a directory, collects its text files and renders them as one document:
- plain text with per-file headers (default)
- Markdown with fenced code blocks
- XML with one element per file

It can also estimate the token cost of that document.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]

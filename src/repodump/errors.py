"""Exceptions raised by repodump."""


class RepodumpError(Exception):
    """Base error for anything that should abort a dump."""

    pass


class ConfigError(RepodumpError):
    """Invalid or unreadable configuration file."""

    pass


class TokenizerError(RepodumpError):
    """The requested tokenizer could not be initialized."""

    pass

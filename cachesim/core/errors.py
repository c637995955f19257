"""Exceptions raised by the cache engine.

Every error derives from CacheSimError so callers (CLI, adapters) can catch
the whole family in one place.
"""


class CacheSimError(Exception):
    """Base class for all simulator errors."""


class ConfigurationError(CacheSimError, ValueError):
    """The requested cache geometry or policy set is not usable."""


class NotConfiguredError(CacheSimError, RuntimeError):
    """An operation needs a cache but none has been configured yet."""


class ParseError(CacheSimError, ValueError):
    """Address or operation text could not be understood."""

    def __init__(self, message: str, text=None, line_number=None):
        super().__init__(message)
        self.text = text
        self.line_number = line_number


class AddressError(CacheSimError, ValueError):
    """Address is not a non-negative integer that fits the address width."""


__all__ = ["CacheSimError", "ConfigurationError", "NotConfiguredError", "ParseError", "AddressError"]

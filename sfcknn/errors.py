"""
Exceptions raised by the sfcknn index.

All of them derive from builtin exceptions so callers that already catch
``ValueError`` around index construction or queries keep working.
"""


class ConfigurationError(ValueError):
    """The index cannot be built (or queried) with the given setup.

    Raised for an empty dataset, duplicate keys, curves that do not cover the
    dataset, bad scale factors, or a curve mask on an index without curves.
    """


class ConsistencyError(RuntimeError):
    """A cached curve position disagrees with the curve order it came from.

    This means the position cache and the curve orders have drifted apart.
    It is a programming error and is never recovered from.
    """


class InvalidParameter(ValueError):
    """A query argument is out of range (k, half-width, mask, position)."""

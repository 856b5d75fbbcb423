"""Exception types used across sqldeck."""

from __future__ import annotations


class SqlDeckError(Exception):
    """Base class for sqldeck errors."""


class DataAccessError(SqlDeckError):
    """A data-access call failed in a way the user can retry.

    Covers bad SQL, dropped connections and similar driver failures.
    """


class UnsupportedOperationError(DataAccessError):
    """The connected backend does not provide the requested feature."""


class ConfigurationError(SqlDeckError):
    """Startup could not produce a usable application state."""


class QueryValidationError(SqlDeckError):
    """User input was rejected before anything was executed."""

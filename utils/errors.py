"""Exceptions raised by the scheduling and garden engines and the record store."""


class LingoCoreError(Exception):
    """Base class for every error raised by this project."""


class ValidationError(LingoCoreError, ValueError):
    """Malformed input. Nothing was mutated; retrying with the same input fails again."""


class NotFoundError(LingoCoreError, LookupError):
    """A chunk, user chunk or tree record does not exist."""


class ConcurrencyConflict(LingoCoreError):
    """A record was written by someone else since it was loaded.

    Reload the record and recompute; the engines are safe to re-run.
    """

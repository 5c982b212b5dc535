"""
Domain errors raised by the results services and stores.
"""


class NotFoundError(ValueError):
    """Referenced quiz, submission or answer does not exist."""


class PersistenceError(RuntimeError):
    """A write to the backing store failed."""


class StaleSubmissionError(PersistenceError):
    """The submission changed since it was read; re-fetch and retry."""


class DegradedLookupError(Exception):
    """An auxiliary lookup failed. Always caught and replaced by a placeholder."""

"""Exceptions and warnings raised by the matchers."""


class MatcherError(Exception):
    """Base exception for all matcher operations."""


class DiffCancelledError(MatcherError):
    """Raised when the shared cancellation flag is set mid-pipeline."""


class ThresholdExhaustionWarning(UserWarning):
    """Bottom-up matching found containers with no candidate above threshold.

    Not an error: those containers simply end up as delete + insert.
    """

"""Exceptions for mapping store operations."""


class MappingError(Exception):
    """Base exception for all mapping store operations."""


class ConflictError(MappingError):
    """Raised when a mapping would break the one-to-one correspondence.

    Always indicates a matcher defect; the offending ids are kept on the
    exception so they can be logged.
    """

    def __init__(self, src: int, dst: int, reason: str):
        self.src = src
        self.dst = dst
        self.reason = reason
        super().__init__(f"Cannot map {src} -> {dst}: {reason}")

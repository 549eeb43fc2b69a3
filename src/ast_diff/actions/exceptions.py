"""Exceptions for edit script generation and replay."""


class EditScriptError(Exception):
    """Base exception for edit script operations."""


class ReplayError(EditScriptError):
    """Raised when an action cannot be applied to the working tree."""

"""
Error types for the SEO content assistant.

Every failure the workflow can report derives from AssistantError so the
controller can catch them at one boundary and turn them into a message.
"""

from typing import Optional


class AssistantError(Exception):
    """Base class for workflow errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AssistantError):
    """Raised when caller input is invalid before any oracle call."""
    pass


class PreconditionError(AssistantError):
    """Raised when an operation needs an active analysis session and has none."""
    pass


class OracleError(AssistantError):
    """Raised when the scoring/suggestion service fails or answers badly."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StaleResponseDiscard(AssistantError):
    """
    Signals that a response was dropped because a newer request superseded it.

    Internal only: it is caught inside the workflow and never shown to users.
    """

    def __init__(self, kind: str, reason: str):
        super().__init__(f"Discarded stale {kind} response: {reason}")
        self.kind = kind
        self.reason = reason

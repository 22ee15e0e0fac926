from __future__ import annotations


class QualiBotError(RuntimeError):
    """Base class for failures surfaced by the action."""


class ConfigError(QualiBotError):
    """Raised when a required action input is missing or unusable."""


class TriggerError(QualiBotError):
    """Raised when the test-creation request is rejected or cannot be sent."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class StatusReadError(QualiBotError):
    """Raised when one status read fails. The poll loop recovers from it."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class CommentError(QualiBotError):
    """Raised when the pull request comment cannot be written."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

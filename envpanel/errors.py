from typing import Optional


class PanelError(Exception):
    """Base class for errors raised by the environments panel."""


class JiraRequestError(PanelError):
    """Non-success response from the Jira REST API."""

    def __init__(self, status: int, reason: str = "", body: Optional[str] = None):
        self.status = status
        self.reason = reason or ""
        self.body = body
        super().__init__(f"HTTP {status}: {self.reason}".rstrip(": ").rstrip())


class MissingProjectKeyError(PanelError):
    def __init__(self, message: str = "Unable to determine current project key"):
        super().__init__(message)


class EnvironmentIndexError(PanelError, IndexError):
    def __init__(self, index: int, length: int):
        self.index = index
        self.length = length
        super().__init__(f"environment index {index} out of range (0..{length - 1})")


class SaveInProgressError(PanelError):
    def __init__(self, message: str = "Another save is still in progress"):
        super().__init__(message)


class PanelStateError(PanelError):
    """Action not allowed in the current dialog state."""

"""Typed exception hierarchy for sync engine errors.

API failures surface as src.storyblok_client.errors types; the errors here
cover what the engine itself detects.
"""

from src.storyblok_client.errors import SyncError


class SpaceSyncError(SyncError):
    """Base exception for all sync engine errors."""
    pass


class SourceFolderNotFoundError(SpaceSyncError):
    """Raised when an ancestor folder is missing in the source space too."""

    def __init__(self, path: str):
        super().__init__(f"source folder not found: {path}")
        self.path = path


class NotAFolderError(SpaceSyncError):
    """Raised when an ancestor path resolves to a story instead of a folder."""

    def __init__(self, path: str):
        super().__init__(f"expected folder at {path}, found story")
        self.path = path


class OperationCancelledError(SpaceSyncError):
    """Raised when a blocking wait observes cancellation."""

    def __init__(self, message: str = "operation cancelled"):
        super().__init__(message)


class DeadlineExceededError(OperationCancelledError):
    """Raised when a call context runs past its deadline."""

    def __init__(self, timeout: float):
        super().__init__(f"deadline of {timeout:g}s exceeded")
        self.timeout = timeout

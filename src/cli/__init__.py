"""Command-line interface for Storyblok space-to-space sync.

This package provides the `sbsync` CLI tool that plans and executes the copy
of stories and folders from a source space into a target space, with progress
indication, a JSON run report and error handling mapped to exit codes.
"""

from .sync_command import SyncCommand, select_stories
from .models import ExitCode, SbsyncConfig, SyncSummary
from .errors import (
    CLIError,
    ConfigError,
    ConfigNotFoundError,
    FilesystemError,
    SelectionError,
)

__all__ = [
    'SyncCommand',
    'select_stories',
    'ExitCode',
    'SbsyncConfig',
    'SyncSummary',
    'CLIError',
    'ConfigError',
    'ConfigNotFoundError',
    'FilesystemError',
    'SelectionError',
]

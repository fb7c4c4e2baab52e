"""Data models for sync planning and execution.

All models are dataclasses or enums, mirroring the style of
src/storyblok_client/models.py. They live for a single run only.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from src.storyblok_client.models import Story


class ItemState(str, Enum):
    """Planned action for a preflight item."""

    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"


class RunStatus(str, Enum):
    """Execution status of a preflight item."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class Operation(str, Enum):
    """Operation performed (or attempted) on the target."""

    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"


@dataclass
class PreflightItem:
    """A story selected for sync, classified for planning.

    Attributes:
        story: Source story (possibly renamed by a fork)
        state: Planned action
        run: Execution status
        selected: True if chosen by the user or auto-added
        collision: True if the full slug already exists in the target
        skip: True if the item is excluded from the run
        issue: Free-text planning problem, if any
        source_full_slug: Full slug the story has in the source space when a
            fork renamed it (empty otherwise)

    Example:
        >>> item = PreflightItem(story=Story(full_slug="app"), state=ItemState.CREATE)
    """
    story: Story
    state: ItemState = ItemState.CREATE
    run: RunStatus = RunStatus.PENDING
    selected: bool = True
    collision: bool = False
    skip: bool = False
    issue: str = ""
    source_full_slug: str = ""

    @property
    def is_folder(self) -> bool:
        return self.story.is_folder

    @property
    def source_path(self) -> str:
        """Full slug to read the story's source content from."""
        return self.source_full_slug or self.story.full_slug


@dataclass
class SyncPlanStep:
    """One ordered step of an execution plan.

    Attributes:
        story: Source story
        action: CREATE or UPDATE
        target_id: Existing target id (0 when creating)
        name: Final name in the target (differs from the source on forks)
    """
    story: Story
    action: Operation
    target_id: int = 0
    name: str = ""


@dataclass
class SyncItemResult:
    """Outcome details of one synced item.

    Partial results (operation and retry counts) are returned even when the
    item fails, so the caller can report how far it got.

    Attributes:
        operation: CREATE or UPDATE
        target_story: Resulting target story (None on failure)
        warning: Non-fatal problem, e.g. failed uuid reconciliation
        retry_total: Transport retries while syncing this item
        retry_429: Retries caused by throttling
        retry_5xx: Retries caused by server errors
        retry_net: Retries caused by network errors
    """
    operation: Operation
    target_story: Optional[Story] = None
    warning: str = ""
    retry_total: int = 0
    retry_429: int = 0
    retry_5xx: int = 0
    retry_net: int = 0


@dataclass
class ItemOutcome:
    """Result of executing one plan item, as reported to the caller."""
    index: int
    result: Optional[SyncItemResult] = None
    error: Optional[Exception] = None
    duration_ms: int = 0
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled


@dataclass
class HydrationStats:
    """Counters of a hydration pass.

    Attributes:
        total: Stories considered
        drafts: Draft variants cached
        published: Published variants cached
        misses: Stories with no variant cached afterwards
    """
    total: int = 0
    drafts: int = 0
    published: int = 0
    misses: int = 0


@dataclass
class HydrationProgress:
    """Incremental progress event emitted during hydration."""
    total: int = 0
    incr_drafts: int = 0
    incr_published: int = 0


@dataclass
class CDATokenInfo:
    """Delivery API token chosen for a space.

    Attributes:
        selected: Token to use ("" if none)
        kind: "preview", "public" or ""
        public: First public token found
        preview: First preview (private) token found
        available: True if selected is non-empty
    """
    selected: str = ""
    kind: str = ""
    public: str = ""
    preview: str = ""
    available: bool = False


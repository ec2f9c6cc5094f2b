"""Error kinds raised by the sync engine"""

from datetime import datetime
from typing import Optional


class SyncError(Exception):
    """Base class for sync failures"""


class SyncConfigError(SyncError):
    """Project cannot be synced as configured; raised before any network call"""


class ProjectNotFoundError(SyncConfigError):
    """Sync requested for a project that does not exist"""

    def __init__(self, project_id: int):
        self.project_id = project_id
        super().__init__(f"Project {project_id} not found")


class RateLimitError(SyncError):
    """GitHub is still throttling after the bounded retry; fatal to the run"""

    def __init__(self, reset_at: Optional[datetime], wait_seconds: Optional[float]):
        self.reset_at = reset_at
        self.wait_seconds = wait_seconds
        when = reset_at.isoformat() + "Z" if reset_at else "unknown"
        super().__init__(f"GitHub API rate limit exceeded; resets at {when}")


class SyncItemError(SyncError):
    """A single issue failed to sync. The run records it and moves on."""

    def __init__(self, stage: str, subject: str, cause: Exception):
        self.stage = stage
        self.subject = subject
        self.cause = cause
        super().__init__(f"Failed to {stage} {subject}: {cause}")

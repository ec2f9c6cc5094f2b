"""Per-run state shared by the sync stages"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from app.services.conflicts import Conflict
from app.services.errors import SyncItemError
from app.services.github_client import RemoteIssue
from app.services.repo_identity import RepoIdentity

logger = logging.getLogger(__name__)


@dataclass
class SyncSummary:
    created: int = 0
    updated: int = 0
    imported: int = 0
    conflicts: int = 0
    errors: List[str] = field(default_factory=list)
    synced_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": self.created,
            "updated": self.updated,
            "imported": self.imported,
            "conflicts": self.conflicts,
            "errors": list(self.errors),
            "synced_at": self.synced_at.isoformat() if self.synced_at else None,
        }


@dataclass
class SyncRun:
    """Everything one sync run accumulates between stages."""

    project_id: int
    repo: RepoIdentity
    started_at: datetime
    last_synced_at: Optional[datetime]
    remote_issues: List[RemoteIssue] = field(default_factory=list)
    summary: SyncSummary = field(default_factory=SyncSummary)

    # GitHub numbers pushed this run; the snapshot is stale for them.
    pushed: Set[int] = field(default_factory=set)
    # Push updates that failed; pull must not overwrite their pending local edits.
    push_failed: Set[int] = field(default_factory=set)
    _conflicted: Set[int] = field(default_factory=set)

    @property
    def remote_by_number(self) -> Dict[int, RemoteIssue]:
        return {r.number: r for r in self.remote_issues if not r.is_pull_request}

    def note_conflict(self, number: int, conflict: Conflict) -> None:
        """Count each conflicting issue once per run, whichever side wins."""
        if number in self._conflicted:
            return
        self._conflicted.add(number)
        self.summary.conflicts += 1
        logger.warning(
            f"Conflict on issue #{number} in {self.repo}: local {conflict.local_updated_at}, "
            f"remote {conflict.remote_updated_at}; {conflict.winner.value} wins"
        )

    def add_error(self, error: SyncItemError) -> None:
        logger.error(str(error))
        self.summary.errors.append(str(error))

"""Last-write-wins conflict detection shared by push and pull"""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


class Winner(str, enum.Enum):
    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True)
class Conflict:
    local_updated_at: datetime
    remote_updated_at: datetime
    winner: Winner

    @property
    def local_wins(self) -> bool:
        return self.winner == Winner.LOCAL


def changed_since(when: Optional[datetime], last_synced_at: Optional[datetime]) -> bool:
    """True when `when` is strictly after the watermark (or there is no watermark)."""
    if last_synced_at is None:
        return True
    return when is not None and when > last_synced_at


def detect_conflict(
    local_updated_at: Optional[datetime],
    remote_updated_at: Optional[datetime],
    last_synced_at: Optional[datetime],
    local_pending: bool = False,
) -> Optional[Conflict]:
    """Return a Conflict when both sides changed after the watermark, else None.

    local_pending marks a local edit from before the watermark that never
    reached GitHub; it still counts as a local change.

    The strictly later side wins. Ties go to the local copy: push is defending
    it, and pull treats a tie as "remote does not win".
    """
    if last_synced_at is None or local_updated_at is None or remote_updated_at is None:
        return None
    local_changed = local_pending or local_updated_at > last_synced_at
    if not (local_changed and remote_updated_at > last_synced_at):
        return None
    winner = Winner.REMOTE if remote_updated_at > local_updated_at else Winner.LOCAL
    return Conflict(local_updated_at, remote_updated_at, winner)

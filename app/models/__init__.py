"""Database models"""

from app.models.base import Base
from app.models.issue import GithubState, Issue, IssueStatus, IssueType, Priority
from app.models.issue_activity import ActivityAction, IssueActivity
from app.models.project import Project
from app.models.sync_log import SyncLog, SyncStatus

__all__ = [
    "Base",
    "Project",
    "Issue",
    "IssueType",
    "Priority",
    "IssueStatus",
    "GithubState",
    "IssueActivity",
    "ActivityAction",
    "SyncLog",
    "SyncStatus",
]

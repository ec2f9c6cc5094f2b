"""Services"""

from app.services.github_client import GitHubClient
from app.services.issue_store import ActivityLogger, IssueStore
from app.services.sync_service import SyncService

__all__ = ["GitHubClient", "IssueStore", "ActivityLogger", "SyncService"]

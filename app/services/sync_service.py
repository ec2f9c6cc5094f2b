"""Issue synchronization service"""

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.models import SyncStatus
from app.models.base import utcnow
from app.services.errors import ProjectNotFoundError, RateLimitError, SyncConfigError
from app.services.github_client import GitHubClient
from app.services.issue_store import ActivityLogger, IssueStore
from app.services.label_provisioner import LabelProvisioner
from app.services.pull_engine import PullEngine
from app.services.push_engine import PushEngine
from app.services.repo_identity import RepoIdentity
from app.services.sync_run import SyncRun, SyncSummary

logger = logging.getLogger(__name__)

class SyncService:
    """Runs one project's GitHub sync:

    ValidateConfig -> FetchRemoteSnapshot -> ProvisionLabels -> Push(create)
    -> Push(update) -> Pull -> PersistWatermark.

    Only configuration errors (before any network call) and RateLimitError
    abort a run; everything else is collected into the summary's errors.
    """

    def __init__(
        self,
        store: IssueStore,
        activity: ActivityLogger,
        *,
        token: Optional[str] = None,
        client_factory: Callable[[str], GitHubClient] = GitHubClient.from_settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.activity = activity
        self.token = token
        self.client_factory = client_factory
        self.clock = clock

    @classmethod
    def from_session(cls, db: Session) -> "SyncService":
        return cls(IssueStore(db), ActivityLogger(db), token=settings.github_pat)

    def _validate_config(self, project_id: int):
        project = self.store.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        if not project.github_repo:
            raise SyncConfigError("Project has no GitHub repository configured")
        repo = RepoIdentity.parse(project.github_repo)
        if not self.token:
            raise SyncConfigError("GITHUB_PAT environment variable is not configured")
        return project, repo

    def sync_project(self, project_id: int) -> SyncSummary:
        """Sync one project with its GitHub repository"""
        project, repo = self._validate_config(project_id)
        run = SyncRun(
            project_id=project.id,
            repo=repo,
            started_at=self.clock(),
            last_synced_at=project.github_synced_at,
        )
        logger.info(f"Starting sync for project {project.name} with {repo}")

        client = self.client_factory(self.token)
        try:
            self._run_stages(client, run)
        except RateLimitError as e:
            logger.error(f"Sync aborted for project {project_id}: {e}")
            self.store.record_sync_log(
                project_id, SyncStatus.FAILED, f"Sync aborted: {e}", run.summary.to_dict()
            )
            raise
        finally:
            close = getattr(client, "close", None)
            if close is not None:
                close()

        status = SyncStatus.PARTIAL if run.summary.errors else SyncStatus.SUCCESS
        self.store.record_sync_log(
            project_id, status, f"Sync completed: {run.summary.to_dict()}", run.summary.to_dict()
        )
        logger.info(f"Sync completed for project {project_id}: {run.summary.to_dict()}")
        return run.summary

    def _run_stages(self, client: GitHubClient, run: SyncRun) -> None:
        try:
            run.remote_issues = client.list_issues(run.repo)
        except RateLimitError:
            raise
        except Exception as e:
            # No snapshot: conflict detection and pull can't run, keep the watermark.
            run.summary.errors.append(f"Failed to fetch GitHub issues for {run.repo}: {e}")
            logger.error(run.summary.errors[-1])
            return

        provisioned = LabelProvisioner(client).ensure_labels(
            run.repo, self.store.find_issues(run.project_id)
        )
        run.summary.errors.extend(provisioned.errors)

        push = PushEngine(self.store, client, self.activity)
        push.create_unsynced(run)
        push.update_changed(run)

        PullEngine(self.store, self.activity).pull(run)

        # Failed pushes are retried through Issue.github_push_pending, not the watermark.
        self.store.set_watermark(run.project_id, run.started_at)
        run.summary.synced_at = run.started_at

"""Push local issues to GitHub"""

import logging

from app.models import ActivityAction, GithubState, Issue, IssueStatus
from app.services.conflicts import detect_conflict
from app.services.errors import RateLimitError, SyncItemError
from app.services.github_client import GitHubClient
from app.services.issue_store import ActivityLogger, IssueStore
from app.services.label_codec import encode_labels
from app.services.sync_run import SyncRun

logger = logging.getLogger(__name__)


def desired_remote_state(issue: Issue) -> str:
    """Local DONE closes the GitHub issue; every other column keeps it open."""
    return "closed" if issue.status == IssueStatus.DONE else "open"


class PushEngine:
    """Creates GitHub issues for never-pushed issues and pushes local edits"""

    def __init__(self, store: IssueStore, client: GitHubClient, activity: ActivityLogger):
        self.store = store
        self.client = client
        self.activity = activity

    def create_unsynced(self, run: SyncRun) -> None:
        # Oldest first so GitHub numbering roughly follows local creation order.
        for issue in self.store.find_issues(run.project_id, synced=False):
            title = issue.title
            try:
                remote = self.client.create_issue(
                    run.repo,
                    title=issue.title,
                    body=issue.description or "",
                    labels=encode_labels(issue.type, issue.priority, issue.labels),
                )
                self.store.update_issue(
                    issue.id,
                    {"github_issue_number": remote.number, "github_state": GithubState.OPEN},
                )
                self.activity.record(
                    issue.id, ActivityAction.SYNCED, "githubIssueNumber", None, remote.number
                )
                run.pushed.add(remote.number)
                run.summary.created += 1
            except RateLimitError:
                raise
            except Exception as e:
                run.add_error(SyncItemError("create GitHub issue for", f'"{title}"', e))

    def update_changed(self, run: SyncRun) -> None:
        remote_by_number = run.remote_by_number
        # No watermark yet: every linked issue is pushed once.
        for issue in self.store.find_issues(
            run.project_id, synced=True, updated_after=run.last_synced_at, include_pending=True
        ):
            number = issue.github_issue_number
            if number in run.pushed:
                # Created a moment ago with the current content.
                continue
            issue_id = issue.id
            title = issue.title
            local_updated_at = issue.updated_at
            pending = bool(issue.github_push_pending)
            remote = remote_by_number.get(number)

            if remote is not None:
                conflict = detect_conflict(
                    local_updated_at, remote.updated_at, run.last_synced_at, local_pending=pending
                )
                if conflict is not None:
                    run.note_conflict(number, conflict)
                    if not conflict.local_wins:
                        # Pull applies the newer remote copy.
                        continue

            try:
                state = desired_remote_state(issue)
                self.client.update_issue(
                    run.repo,
                    number,
                    title=issue.title,
                    body=issue.description or "",
                    labels=encode_labels(issue.type, issue.priority, issue.labels),
                    state=state,
                )
                cached = GithubState.CLOSED if state == "closed" else GithubState.OPEN
                patch = {}
                if issue.github_state != cached:
                    patch["github_state"] = cached
                    logger.info(f"Issue #{number} github_state {issue.github_state} -> {cached}")
                if pending:
                    patch["github_push_pending"] = False
                if patch:
                    self.store.update_issue(issue_id, patch)
                self.activity.record(issue_id, ActivityAction.SYNCED, new_value=f"pushed to #{number}")
                run.pushed.add(number)
                run.summary.updated += 1
            except RateLimitError:
                raise
            except Exception as e:
                run.push_failed.add(number)
                run.add_error(SyncItemError("update GitHub issue", f'#{number} ("{title}")', e))
                if not pending:
                    self._mark_pending(issue_id, number)

    def _mark_pending(self, issue_id: int, number: int) -> None:
        """Keep a failed push selected by later runs, whatever the watermark."""
        try:
            self.store.update_issue(issue_id, {"github_push_pending": True})
        except Exception as e:
            logger.error(f"Failed to mark issue #{number} for a push retry: {e}")

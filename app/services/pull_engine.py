"""Pull GitHub state into the local store"""

import logging
from typing import Any, Dict, Tuple

from app.models import ActivityAction, GithubState, Issue, IssueStatus
from app.services.conflicts import changed_since, detect_conflict
from app.services.errors import RateLimitError, SyncItemError
from app.services.github_client import RemoteIssue
from app.services.issue_store import ActivityLogger, IssueStore
from app.services.label_codec import decode_labels, same_label_set
from app.services.sync_run import SyncRun

logger = logging.getLogger(__name__)

# model attribute -> activity field name
_FIELD_NAMES = {
    "github_state": "githubState",
    "type": "type",
    "priority": "priority",
    "labels": "labels",
    "title": "title",
    "description": "description",
}


def remote_github_state(remote: RemoteIssue) -> GithubState:
    return GithubState.CLOSED if remote.is_closed else GithubState.OPEN


def diff_remote(issue: Issue, remote: RemoteIssue) -> Dict[str, Tuple[Any, Any]]:
    """Fields where GitHub disagrees with the local copy: {attr: (local, remote)}"""
    decoded = decode_labels(remote.labels)
    changes: Dict[str, Tuple[Any, Any]] = {}

    state = remote_github_state(remote)
    if issue.github_state != state:
        changes["github_state"] = (issue.github_state, state)
    if issue.type != decoded.type:
        changes["type"] = (issue.type, decoded.type)
    if issue.priority != decoded.priority:
        changes["priority"] = (issue.priority, decoded.priority)
    if not same_label_set(issue.labels, decoded.labels):
        changes["labels"] = (list(issue.labels or []), decoded.labels)
    if (issue.title or "") != (remote.title or ""):
        changes["title"] = (issue.title, remote.title)
    # Push sends a null description as "", so both spellings mean "empty".
    if (issue.description or "") != (remote.body or ""):
        changes["description"] = (issue.description, remote.body or None)
    return changes


class PullEngine:
    """Applies remote changes to linked issues and imports new GitHub issues"""

    def __init__(self, store: IssueStore, activity: ActivityLogger):
        self.store = store
        self.activity = activity

    def pull(self, run: SyncRun) -> None:
        local_by_number = {
            issue.github_issue_number: issue
            for issue in self.store.find_issues(run.project_id, synced=True)
        }

        for remote in run.remote_issues:
            if remote.is_pull_request:
                continue
            local = local_by_number.get(remote.number)
            try:
                if local is None:
                    self._import(run, remote)
                else:
                    self._apply(run, local, remote)
            except RateLimitError:
                raise
            except Exception as e:
                stage = "import GitHub issue" if local is None else "pull GitHub issue"
                run.add_error(SyncItemError(stage, f"#{remote.number}", e))

    def _apply(self, run: SyncRun, issue: Issue, remote: RemoteIssue) -> None:
        number = remote.number
        if number in run.pushed or number in run.push_failed:
            # Snapshot predates this run's push, or a local edit is still pending.
            return

        changes = diff_remote(issue, remote)
        if not changes:
            return

        pending = bool(issue.github_push_pending)
        conflict = detect_conflict(
            issue.updated_at, remote.updated_at, run.last_synced_at, local_pending=pending
        )
        if conflict is not None:
            run.note_conflict(number, conflict)
            if conflict.local_wins:
                return
        elif (
            run.last_synced_at is not None
            and (pending or changed_since(issue.updated_at, run.last_synced_at))
            and not changed_since(remote.updated_at, run.last_synced_at)
        ):
            # Only the local side moved; that edit goes out on the next push.
            return

        patch = {attr: new for attr, (_old, new) in changes.items()}
        old_status = issue.status
        force_done = (
            "github_state" in changes
            and changes["github_state"][1] == GithubState.CLOSED
            and old_status != IssueStatus.DONE
        )
        if force_done:
            patch["status"] = IssueStatus.DONE
        if pending:
            # The newer remote copy replaces the unpushed edit.
            patch["github_push_pending"] = False

        issue_id = issue.id
        self.store.update_issue(issue_id, patch)

        for attr, (old, new) in changes.items():
            self.activity.record(issue_id, ActivityAction.SYNCED, _FIELD_NAMES[attr], old, new)
        if force_done:
            self.activity.record(
                issue_id, ActivityAction.STATUS_CHANGED, "status", old_status, IssueStatus.DONE
            )
        run.summary.updated += 1
        logger.info(f"Pulled {sorted(changes)} for issue #{number} in {run.repo}")

    def _import(self, run: SyncRun, remote: RemoteIssue) -> None:
        decoded = decode_labels(remote.labels)
        issue = self.store.create_issue(
            run.project_id,
            title=remote.title,
            description=remote.body or None,
            type=decoded.type,
            priority=decoded.priority,
            labels=decoded.labels,
            assignees=list(remote.assignees),
            status=IssueStatus.DONE if remote.is_closed else IssueStatus.BACKLOG,
            github_issue_number=remote.number,
            github_state=remote_github_state(remote),
            # Not a local edit: keep it at or before the next watermark.
            updated_at=run.started_at,
        )
        self.activity.record(
            issue.id, ActivityAction.CREATED, "githubIssueNumber", None, remote.number
        )
        run.summary.imported += 1
        logger.info(f"Imported issue #{remote.number} from {run.repo}")

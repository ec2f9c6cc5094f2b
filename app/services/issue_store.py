"""Persistence accessors used by the sync engine"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models import (
    ActivityAction,
    Issue,
    IssueActivity,
    Project,
    SyncLog,
    SyncStatus,
)

logger = logging.getLogger(__name__)


class IssueStore:
    """Issue/project reads and per-record atomic writes over one session"""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self):
        try:
            self.db.commit()
        except Exception:
            # Keep the session usable for the next item in the batch.
            self.db.rollback()
            raise

    def get_project(self, project_id: int) -> Optional[Project]:
        return self.db.query(Project).filter(Project.id == project_id).first()

    def get_issue(self, issue_id: int) -> Optional[Issue]:
        return self.db.query(Issue).filter(Issue.id == issue_id).first()

    def find_issues(
        self,
        project_id: int,
        *,
        synced: Optional[bool] = None,
        updated_after: Optional[datetime] = None,
        include_pending: bool = False,
    ) -> List[Issue]:
        """Project issues, oldest first.

        synced=True keeps issues linked to GitHub, synced=False the never-pushed ones.
        include_pending widens updated_after to issues whose last push failed.
        """
        query = self.db.query(Issue).filter(Issue.project_id == project_id)
        if synced is True:
            query = query.filter(Issue.github_issue_number.isnot(None))
        elif synced is False:
            query = query.filter(Issue.github_issue_number.is_(None))
        if updated_after is not None:
            changed = Issue.updated_at > updated_after
            if include_pending:
                changed = or_(changed, Issue.github_push_pending.is_(True))
            query = query.filter(changed)
        return query.order_by(Issue.created_at.asc(), Issue.id.asc()).all()

    def create_issue(self, project_id: int, **fields: Any) -> Issue:
        issue = Issue(project_id=project_id, **fields)
        self.db.add(issue)
        self._commit()
        self.db.refresh(issue)
        return issue

    def update_issue(self, issue_id: int, patch: Dict[str, Any]) -> Issue:
        """Apply a sync-side patch.

        updated_at is the local-edit clock, so it is kept as-is unless the
        patch sets it; otherwise every sync would mark its own writes as edits.
        """
        issue = self.get_issue(issue_id)
        if issue is None:
            raise ValueError(f"Issue {issue_id} not found")
        values = dict(patch)
        # An explicit value in the SET clause keeps the column's onupdate from firing.
        values.setdefault("updated_at", issue.updated_at)
        self.db.query(Issue).filter(Issue.id == issue_id).update(values)
        self._commit()
        self.db.refresh(issue)
        return issue

    def set_watermark(self, project_id: int, when: datetime) -> None:
        project = self.get_project(project_id)
        if project is None:
            raise ValueError(f"Project {project_id} not found")
        project.github_synced_at = when
        self._commit()

    def record_sync_log(
        self,
        project_id: int,
        status: SyncStatus,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log sync run; never breaks the run"""
        log = SyncLog(
            project_id=project_id,
            status=status,
            message=message,
            details=json.dumps(details, default=str) if details is not None else None,
        )
        try:
            self.db.add(log)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to persist sync log for project {project_id}: {e}")

    def list_sync_logs(self, project_id: int, limit: int = 50) -> List[SyncLog]:
        return (
            self.db.query(SyncLog)
            .filter(SyncLog.project_id == project_id)
            .order_by(SyncLog.created_at.desc(), SyncLog.id.desc())
            .limit(limit)
            .all()
        )


def _stringify(value: Any) -> Optional[str]:
    if value is None:
        return None
    if hasattr(value, "value"):
        return str(value.value)
    if isinstance(value, (list, tuple, set)):
        return ", ".join(sorted(str(v) for v in value)) or None
    return str(value)


class ActivityLogger:
    """Append-only issue activity recorder"""

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        issue_id: int,
        action: ActivityAction,
        field: Optional[str] = None,
        old_value: Any = None,
        new_value: Any = None,
    ) -> IssueActivity:
        activity = IssueActivity(
            issue_id=issue_id,
            action=action,
            field=field,
            old_value=_stringify(old_value),
            new_value=_stringify(new_value),
        )
        self.db.add(activity)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return activity

    def list_for_issue(self, issue_id: int) -> List[IssueActivity]:
        return (
            self.db.query(IssueActivity)
            .filter(IssueActivity.issue_id == issue_id)
            .order_by(IssueActivity.created_at.desc(), IssueActivity.id.desc())
            .all()
        )

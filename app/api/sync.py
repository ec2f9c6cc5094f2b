"""Sync management endpoints"""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import BaseModel
from datetime import datetime

from app.models import ActivityAction, SyncStatus
from app.models.base import get_db
from app.scheduler import SyncAlreadyRunningError, scheduler
from app.services.errors import ProjectNotFoundError, RateLimitError, SyncConfigError
from app.services.issue_store import ActivityLogger, IssueStore

router = APIRouter(prefix="/api", tags=["sync"])


class SyncResponse(BaseModel):
    success: bool = True
    created: int
    updated: int
    imported: int
    conflicts: int
    errors: List[str]
    synced_at: Optional[datetime] = None


class SyncLogResponse(BaseModel):
    id: int
    project_id: int
    status: SyncStatus
    message: Optional[str] = None
    details: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class IssueActivityResponse(BaseModel):
    id: int
    issue_id: int
    action: ActivityAction
    field: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


@router.post("/projects/{project_id}/sync", response_model=SyncResponse)
def trigger_sync(project_id: int, db: Session = Depends(get_db)):
    """Manually trigger sync for a project"""
    try:
        summary = scheduler.run_exclusive(project_id, db)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SyncConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SyncAlreadyRunningError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except RateLimitError as e:
        headers = {}
        if e.wait_seconds is not None and e.wait_seconds > 0:
            headers["Retry-After"] = str(int(e.wait_seconds) + 1)
        return JSONResponse(
            status_code=429,
            content={
                "success": False,
                "error": str(e),
                "reset_at": e.reset_at.isoformat() if e.reset_at else None,
            },
            headers=headers,
        )
    return SyncResponse(
        created=summary.created,
        updated=summary.updated,
        imported=summary.imported,
        conflicts=summary.conflicts,
        errors=summary.errors,
        synced_at=summary.synced_at,
    )


@router.get("/projects/{project_id}/sync-logs", response_model=List[SyncLogResponse])
def list_sync_logs(project_id: int, limit: int = 50, db: Session = Depends(get_db)):
    """List recent sync runs for a project"""
    return IssueStore(db).list_sync_logs(project_id, limit=limit)


@router.get("/issues/{issue_id}/activities", response_model=List[IssueActivityResponse])
def list_issue_activities(issue_id: int, db: Session = Depends(get_db)):
    """List an issue's activity trail, newest first"""
    if IssueStore(db).get_issue(issue_id) is None:
        raise HTTPException(status_code=404, detail="Issue not found")
    return ActivityLogger(db).list_for_issue(issue_id)

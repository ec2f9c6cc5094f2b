"""Background scheduler for periodic sync"""

import logging
import threading
from typing import Dict

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.models import Project
from app.models.base import SessionLocal
from app.services.sync_run import SyncSummary
from app.services.sync_service import SyncService

logger = logging.getLogger(__name__)


class SyncAlreadyRunningError(RuntimeError):
    """Another sync for the same project is in progress"""

    def __init__(self, project_id: int):
        self.project_id = project_id
        super().__init__(f"Sync already running for project {project_id}")


class SyncScheduler:
    """Scheduler for periodic issue synchronization"""

    def __init__(self):
        self.scheduler = BackgroundScheduler()
        # Best-effort in-memory index of jobs we created.
        # APScheduler itself is the source of truth (see get_job()).
        self.jobs = {}
        # One run per project at a time, shared by scheduled jobs and manual triggers.
        self._locks: Dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _project_lock(self, project_id: int) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(project_id, threading.Lock())

    def run_exclusive(self, project_id: int, db) -> SyncSummary:
        """Sync a project unless a run for it is already in progress"""
        lock = self._project_lock(project_id)
        if not lock.acquire(blocking=False):
            raise SyncAlreadyRunningError(project_id)
        try:
            return SyncService.from_session(db).sync_project(project_id)
        finally:
            lock.release()

    def start(self):
        """Start the scheduler"""
        self.scheduler.start()
        logger.info("Sync scheduler started")

        # Schedule all enabled projects
        self.schedule_all_projects()

    def stop(self):
        """Stop the scheduler"""
        self.scheduler.shutdown()
        logger.info("Sync scheduler stopped")

    def schedule_all_projects(self):
        """Schedule sync jobs for all enabled projects with a repository"""
        db = SessionLocal()
        try:
            enabled = (
                db.query(Project)
                .filter(Project.sync_enabled == True, Project.github_repo.isnot(None))  # noqa: E712
                .all()
            )
            enabled_ids = {p.id for p in enabled}

            # If this is ever re-run, reconcile existing jobs too.
            for job_id in list(self.jobs.keys()):
                project_id = int(job_id.split("sync_project_", 1)[1])
                if project_id not in enabled_ids:
                    self.unschedule_project(project_id)

            for project in enabled:
                self.schedule_project(project.id, project.sync_interval_minutes)
        finally:
            db.close()

    def schedule_project(self, project_id: int, interval_minutes: int):
        """Schedule sync job for a specific project"""
        job_id = f"sync_project_{project_id}"

        self.scheduler.add_job(
            func=self._sync_project_job,
            trigger=IntervalTrigger(minutes=interval_minutes),
            id=job_id,
            args=[project_id],
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.jobs[job_id] = True
        logger.info(f"Scheduled sync for project {project_id} every {interval_minutes} minutes")

    def unschedule_project(self, project_id: int):
        """Remove sync job for a project"""
        job_id = f"sync_project_{project_id}"
        if self.scheduler.get_job(job_id) is not None:
            self.scheduler.remove_job(job_id)
        self.jobs.pop(job_id, None)
        logger.info(f"Unscheduled sync for project {project_id}")

    def _sync_project_job(self, project_id: int):
        """Job function to sync a project"""
        db = SessionLocal()
        try:
            logger.info(f"Running scheduled sync for project {project_id}")
            summary = self.run_exclusive(project_id, db)
            logger.info(f"Scheduled sync completed for project {project_id}: {summary.to_dict()}")
        except SyncAlreadyRunningError:
            logger.info(f"Skipping scheduled sync for project {project_id}: already running")
        except Exception as e:
            logger.error(f"Scheduled sync failed for project {project_id}: {e}")
        finally:
            db.close()


# Global scheduler instance
scheduler = SyncScheduler()

import logging
import unittest
from types import SimpleNamespace
from unittest.mock import patch

from app.scheduler import SyncAlreadyRunningError, SyncScheduler

logging.disable(logging.CRITICAL)


class _FailingService:
    def sync_project(self, project_id):
        raise RuntimeError("boom")


class SyncSchedulerLockTests(unittest.TestCase):
    def test_run_exclusive_refuses_overlapping_run(self):
        sched = SyncScheduler()
        lock = sched._project_lock(7)
        lock.acquire()
        try:
            with self.assertRaises(SyncAlreadyRunningError):
                sched.run_exclusive(7, db=None)
        finally:
            lock.release()

    def test_run_exclusive_releases_lock_after_failure(self):
        sched = SyncScheduler()
        failing = _FailingService()

        with patch("app.scheduler.SyncService.from_session", return_value=failing):
            with self.assertRaises(RuntimeError):
                sched.run_exclusive(7, db=None)

        self.assertFalse(sched._project_lock(7).locked())

    def test_locks_are_per_project(self):
        sched = SyncScheduler()
        summary = SimpleNamespace(created=0)
        service = SimpleNamespace(sync_project=lambda project_id: summary)

        with sched._project_lock(1):
            with patch("app.scheduler.SyncService.from_session", return_value=service):
                self.assertIs(sched.run_exclusive(2, db=None), summary)


if __name__ == "__main__":
    unittest.main()

import logging
import unittest
from datetime import datetime, timedelta

from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import ActivityAction, GithubState, Issue, IssueActivity, Project, SyncLog, SyncStatus
from app.models.base import init_db
from app.services.issue_store import ActivityLogger, IssueStore

logging.disable(logging.CRITICAL)

T = datetime(2025, 1, 1, 12, 0, 0)


def _make_session():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    init_db(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)()


class IssueStoreTests(unittest.TestCase):
    def setUp(self):
        self.db = _make_session()
        self.project = Project(name="Dock", github_repo="acme/dock")
        self.db.add(self.project)
        self.db.commit()
        self.store = IssueStore(self.db)

    def tearDown(self):
        self.db.close()

    def _issue(self, title, *, number=None, created_at=T, updated_at=T):
        issue = Issue(
            project_id=self.project.id,
            title=title,
            labels=[],
            assignees=[],
            github_issue_number=number,
            created_at=created_at,
            updated_at=updated_at,
        )
        self.db.add(issue)
        self.db.commit()
        return issue

    def test_find_issues_filters_by_link_state_and_orders_oldest_first(self):
        self._issue("newer", created_at=T + timedelta(minutes=5))
        self._issue("older", created_at=T)
        self._issue("linked", number=3)

        unsynced = self.store.find_issues(self.project.id, synced=False)
        synced = self.store.find_issues(self.project.id, synced=True)

        self.assertEqual([i.title for i in unsynced], ["older", "newer"])
        self.assertEqual([i.title for i in synced], ["linked"])
        self.assertEqual(len(self.store.find_issues(self.project.id)), 3)

    def test_find_issues_updated_after_is_strict(self):
        self._issue("at watermark", number=1, updated_at=T)
        self._issue("after watermark", number=2, updated_at=T + timedelta(seconds=1))

        found = self.store.find_issues(self.project.id, synced=True, updated_after=T)

        self.assertEqual([i.title for i in found], ["after watermark"])

    def test_find_issues_can_include_pending_pushes(self):
        stale = self._issue("pending", number=1, updated_at=T - timedelta(hours=1))
        self.store.update_issue(stale.id, {"github_push_pending": True})
        self._issue("untouched", number=2, updated_at=T - timedelta(hours=1))

        without = self.store.find_issues(self.project.id, synced=True, updated_after=T)
        with_pending = self.store.find_issues(
            self.project.id, synced=True, updated_after=T, include_pending=True
        )

        self.assertEqual(without, [])
        self.assertEqual([i.title for i in with_pending], ["pending"])

    def test_update_issue_preserves_updated_at(self):
        issue = self._issue("a", updated_at=T)

        updated = self.store.update_issue(
            issue.id, {"github_issue_number": 7, "github_state": GithubState.CLOSED}
        )

        self.assertEqual(updated.github_issue_number, 7)
        self.assertEqual(updated.github_state, GithubState.CLOSED)
        self.assertEqual(updated.updated_at, T)

    def test_update_issue_honours_explicit_updated_at(self):
        issue = self._issue("a", updated_at=T)

        updated = self.store.update_issue(issue.id, {"updated_at": T + timedelta(hours=1)})

        self.assertEqual(updated.updated_at, T + timedelta(hours=1))

    def test_local_edits_still_bump_updated_at(self):
        issue = self._issue("a", updated_at=T)

        issue.title = "edited"
        self.db.commit()
        self.db.refresh(issue)

        self.assertGreater(issue.updated_at, T)

    def test_duplicate_github_number_is_rejected_and_session_recovers(self):
        self._issue("first", number=5)

        with self.assertRaises(IntegrityError):
            self.store.create_issue(self.project.id, title="dup", labels=[], assignees=[], github_issue_number=5)

        created = self.store.create_issue(self.project.id, title="ok", labels=[], assignees=[], github_issue_number=6)
        self.assertEqual(created.github_issue_number, 6)

    def test_set_watermark(self):
        self.store.set_watermark(self.project.id, T)
        self.assertEqual(self.store.get_project(self.project.id).github_synced_at, T)

    def test_record_sync_log(self):
        self.store.record_sync_log(self.project.id, SyncStatus.PARTIAL, "done", {"created": 1})

        logs = self.store.list_sync_logs(self.project.id)
        self.assertEqual(len(logs), 1)
        self.assertEqual(logs[0].status, SyncStatus.PARTIAL)
        self.assertEqual(logs[0].details, '{"created": 1}')
        self.assertEqual(self.db.query(SyncLog).count(), 1)


class SchemaUpgradeTests(unittest.TestCase):
    def test_init_db_adds_push_pending_column_to_old_issues_table(self):
        engine = create_engine(
            "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
        )
        with engine.begin() as conn:
            conn.exec_driver_sql(
                "CREATE TABLE issues (id INTEGER PRIMARY KEY, project_id INTEGER, "
                "title VARCHAR, github_issue_number INTEGER)"
            )
            conn.exec_driver_sql("INSERT INTO issues (project_id, title) VALUES (1, 'old')")

        init_db(engine)

        columns = {col["name"] for col in inspect(engine).get_columns("issues")}
        self.assertIn("github_push_pending", columns)
        with engine.connect() as conn:
            value = conn.exec_driver_sql("SELECT github_push_pending FROM issues").scalar()
        self.assertFalse(value)


class ActivityLoggerTests(unittest.TestCase):
    def test_record_stringifies_values(self):
        db = _make_session()
        project = Project(name="Dock")
        db.add(project)
        db.commit()
        issue = Issue(project_id=project.id, title="a", labels=[], assignees=[])
        db.add(issue)
        db.commit()

        activity = ActivityLogger(db)
        activity.record(issue.id, ActivityAction.SYNCED, "githubState", GithubState.OPEN, GithubState.CLOSED)
        activity.record(issue.id, ActivityAction.SYNCED, "labels", ["b", "a"], [])
        activity.record(issue.id, ActivityAction.CREATED)

        rows = db.query(IssueActivity).order_by(IssueActivity.id).all()
        self.assertEqual([(r.old_value, r.new_value) for r in rows], [("OPEN", "CLOSED"), ("a, b", None), (None, None)])
        self.assertEqual(len(activity.list_for_issue(issue.id)), 3)
        db.close()


if __name__ == "__main__":
    unittest.main()

import unittest
from datetime import datetime, timedelta

from app.services.conflicts import Winner, changed_since, detect_conflict

T = datetime(2025, 1, 1, 12, 0, 0)


class ConflictDetectionTests(unittest.TestCase):
    def test_no_watermark_never_conflicts(self):
        self.assertIsNone(detect_conflict(T, T + timedelta(hours=1), None))

    def test_only_one_side_changed_is_not_a_conflict(self):
        self.assertIsNone(detect_conflict(T + timedelta(seconds=5), T - timedelta(seconds=5), T))
        self.assertIsNone(detect_conflict(T - timedelta(seconds=5), T + timedelta(seconds=5), T))

    def test_change_exactly_at_watermark_does_not_count(self):
        self.assertIsNone(detect_conflict(T, T + timedelta(seconds=1), T))

    def test_later_local_edit_wins(self):
        conflict = detect_conflict(T + timedelta(seconds=2), T + timedelta(seconds=1), T)
        self.assertIsNotNone(conflict)
        self.assertEqual(conflict.winner, Winner.LOCAL)
        self.assertTrue(conflict.local_wins)

    def test_later_remote_edit_wins(self):
        conflict = detect_conflict(T + timedelta(seconds=1), T + timedelta(seconds=2), T)
        self.assertEqual(conflict.winner, Winner.REMOTE)
        self.assertFalse(conflict.local_wins)

    def test_tie_goes_to_local(self):
        conflict = detect_conflict(T + timedelta(seconds=1), T + timedelta(seconds=1), T)
        self.assertEqual(conflict.winner, Winner.LOCAL)

    def test_missing_remote_timestamp_is_not_a_conflict(self):
        self.assertIsNone(detect_conflict(T + timedelta(seconds=1), None, T))

    def test_pending_local_edit_counts_as_changed(self):
        conflict = detect_conflict(T - timedelta(hours=1), T + timedelta(seconds=1), T, local_pending=True)
        self.assertEqual(conflict.winner, Winner.REMOTE)
        self.assertIsNone(detect_conflict(T - timedelta(hours=1), T, T, local_pending=True))

    def test_changed_since(self):
        self.assertTrue(changed_since(T, None))
        self.assertTrue(changed_since(T + timedelta(microseconds=1), T))
        self.assertFalse(changed_since(T, T))
        self.assertFalse(changed_since(None, T))


if __name__ == "__main__":
    unittest.main()

import unittest

from perf_ledger.controllers.session_tracker import NO_SESSION, SessionTracker
from perf_ledger.utils.errors import NoActiveSession, SessionAlreadyActive
from perf_ledger.utils.performance_tracker import RecordStore


class TestSessionTracker(unittest.TestCase):
    def setUp(self):
        self.store = RecordStore()
        self.tracker = SessionTracker(self.store)

    def test_initial_state_has_no_session(self):
        self.assertEqual(self.tracker.active_start("alice"), NO_SESSION)
        self.assertFalse(self.tracker.is_active("alice"))

    def test_start_then_end_folds_duration(self):
        self.tracker.start("alice", 100)
        self.assertEqual(self.tracker.active_start("alice"), 100)
        duration, rec = self.tracker.end("alice", 145)
        self.assertEqual(duration, 45)
        self.assertEqual(rec.total_session_time, 45)
        self.assertEqual(rec.session_count, 1)
        self.assertEqual(rec.last_active, 145)
        self.assertEqual(self.tracker.active_start("alice"), NO_SESSION)

    def test_second_start_is_rejected_without_side_effects(self):
        self.tracker.start("alice", 100)
        with self.assertRaises(SessionAlreadyActive) as ctx:
            self.tracker.start("alice", 120)
        self.assertEqual(ctx.exception.started_at, 100)
        self.assertEqual(self.tracker.active_start("alice"), 100)
        self.assertEqual(self.store.get("alice").last_active, 100)

    def test_cancel_does_not_fold_duration(self):
        self.tracker.start("alice", 100)
        self.tracker.cancel("alice", 160)
        rec = self.store.get("alice")
        self.assertEqual(rec.total_session_time, 0)
        self.assertEqual(rec.session_count, 0)
        self.assertEqual(rec.last_active, 160)
        self.assertFalse(self.tracker.is_active("alice"))

    def test_end_or_cancel_without_start_is_rejected(self):
        with self.assertRaises(NoActiveSession):
            self.tracker.end("alice", 10)
        with self.assertRaises(NoActiveSession):
            self.tracker.cancel("alice", 10)
        self.assertNotIn("alice", self.store)

    def test_clock_regression_clamps_duration_to_zero(self):
        self.tracker.start("alice", 200)
        duration, rec = self.tracker.end("alice", 150)
        self.assertEqual(duration, 0)
        self.assertEqual(rec.total_session_time, 0)
        self.assertEqual(rec.session_count, 1)

    def test_sessions_can_be_restarted_after_completion(self):
        self.tracker.start("alice", 0)
        self.tracker.end("alice", 10)
        self.tracker.start("alice", 20)
        _, rec = self.tracker.end("alice", 25)
        self.assertEqual(rec.total_session_time, 15)
        self.assertEqual(rec.session_count, 2)


if __name__ == "__main__":
    unittest.main()

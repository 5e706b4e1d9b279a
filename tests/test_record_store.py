import unittest

from perf_ledger.utils.performance_tracker import PerformanceRecord, RecordStore


class TestPerformanceRecord(unittest.TestCase):
    def test_defaults_are_zero(self):
        rec = PerformanceRecord()
        self.assertTrue(all(v == 0 for v in rec.to_dict().values()))
        self.assertEqual(len(rec.to_dict()), 8)

    def test_average_uses_floor_division(self):
        rec = PerformanceRecord(submitted_score_sum=10, submitted_score_count=3)
        self.assertEqual(rec.average_submitted_score(), 3)

    def test_average_without_submissions_is_zero(self):
        self.assertEqual(PerformanceRecord().average_submitted_score(), 0)


class TestRecordStore(unittest.TestCase):
    def setUp(self):
        self.store = RecordStore()

    def test_get_unknown_identity_does_not_create_entry(self):
        rec = self.store.get("ghost")
        self.assertEqual(rec, PerformanceRecord())
        self.assertNotIn("ghost", self.store)
        self.assertEqual(len(self.store), 0)

    def test_touch_creates_once(self):
        first = self.store.touch("alice")
        second = self.store.touch("alice")
        self.assertIs(first, second)
        self.assertEqual(len(self.store), 1)

    def test_get_returns_detached_copy(self):
        self.store.record_attempt("alice", now=10)
        snap = self.store.get("alice")
        snap.attempts = 99
        self.assertEqual(self.store.get("alice").attempts, 1)

    def test_success_and_failure_pair_with_attempts(self):
        self.store.record_success("alice", now=1)
        self.store.record_failure("alice", now=2)
        self.store.record_attempt("alice", now=3)
        rec = self.store.get("alice")
        self.assertEqual((rec.attempts, rec.successes, rec.failures), (3, 1, 1))
        self.assertEqual(rec.last_active, 3)

    def test_add_score_and_session_accumulate(self):
        self.store.add_score("alice", 7, now=5)
        self.store.add_score("alice", 8, now=6)
        self.store.add_session("alice", 30, now=7)
        rec = self.store.get("alice")
        self.assertEqual(rec.submitted_score_sum, 15)
        self.assertEqual(rec.submitted_score_count, 2)
        self.assertEqual(rec.total_session_time, 30)
        self.assertEqual(rec.session_count, 1)
        self.assertEqual(rec.last_active, 7)

    def test_iteration_lists_touched_identities(self):
        self.store.record_attempt("a", now=1)
        self.store.mark_active("b", now=2)
        self.assertEqual(sorted(self.store), ["a", "b"])


if __name__ == "__main__":
    unittest.main()

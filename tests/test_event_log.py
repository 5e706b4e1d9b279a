import json
import tempfile
import unittest
from pathlib import Path

from perf_ledger.utils.event_log import EventLog
from perf_ledger.utils.events import AttemptRecorded, EventBus, SessionStarted, SuccessRecorded


class TestEventLog(unittest.TestCase):
    def setUp(self):
        self.bus = EventBus()
        self.log = EventLog()
        self.bus.subscribe(self.log)

    def test_appends_in_publish_order_and_filters(self):
        self.bus.publish(AttemptRecorded("a", attempts=1))
        self.bus.publish(SessionStarted("b", start=10))
        self.bus.publish(SuccessRecorded("a", successes=1))
        self.assertEqual(self.log.names(), ["AttemptRecorded", "SessionStarted", "SuccessRecorded"])
        self.assertEqual(self.log.names("a"), ["AttemptRecorded", "SuccessRecorded"])
        self.assertEqual(len(self.log), 3)

    def test_unsubscribe_stops_delivery(self):
        self.bus.unsubscribe(self.log)
        self.bus.unsubscribe(self.log)
        self.bus.publish(AttemptRecorded("a", attempts=1))
        self.assertEqual(len(self.log), 0)
        self.assertEqual(len(self.bus), 0)

    def test_to_jsonl(self):
        self.bus.publish(SessionStarted("a", start=10))
        with tempfile.TemporaryDirectory() as tmp:
            out = Path(tmp) / "nested" / "events.jsonl"
            self.assertEqual(self.log.to_jsonl(out), 1)
            lines = out.read_text(encoding="utf-8").splitlines()
        self.assertEqual(json.loads(lines[0]), {"event": "SessionStarted", "identity": "a", "start": 10})


if __name__ == "__main__":
    unittest.main()

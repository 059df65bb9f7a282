import json
import logging
import sys
import tempfile
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "core"))
sys.path.insert(0, str(ROOT / "packages" / "protocol"))

from scalersync_core.logging_setup import JsonFormatter, configure_logging, get_logger, shutdown_logging


class LoggingSetupTests(unittest.TestCase):
    def tearDown(self):
        shutdown_logging()

    def _records(self, directory: Path) -> list[dict]:
        text = (directory / "scalersync.log").read_text(encoding="utf-8")
        return [json.loads(line) for line in text.splitlines() if line.strip()]

    def test_writes_json_records_into_directory(self):
        with tempfile.TemporaryDirectory() as tmp:
            directory = Path(tmp) / "logs"
            configure_logging(console=False, directory=directory)
            get_logger().info("sending command", extra={"event": "command_sent", "command": "QueryActivePixels"})
            logging.getLogger("scalersync_protocol.state_machine").info("cycle complete", extra={"event": "cycle_complete"})
            shutdown_logging()

            records = self._records(directory)
            events = [r.get("event") for r in records]
            self.assertEqual(events, ["logging_configured", "command_sent", "cycle_complete"])
            self.assertEqual(records[1]["command"], "QueryActivePixels")
            self.assertEqual(records[2]["logger"], "scalersync_protocol.state_machine")

    def test_debug_only_when_verbose(self):
        with tempfile.TemporaryDirectory() as tmp:
            directory = Path(tmp)
            configure_logging(console=False, directory=directory)
            logging.getLogger("scalersync_protocol.decoder").debug("unrecognised", extra={"event": "decode_unknown"})
            shutdown_logging()
            self.assertNotIn("decode_unknown", [r.get("event") for r in self._records(directory)])

            configure_logging(console=False, verbose=True, directory=directory)
            logging.getLogger("scalersync_protocol.decoder").debug("unrecognised", extra={"event": "decode_unknown"})
            shutdown_logging()
            self.assertIn("decode_unknown", [r.get("event") for r in self._records(directory)])

    def test_configure_is_idempotent(self):
        with tempfile.TemporaryDirectory() as tmp:
            configure_logging(console=False, directory=Path(tmp))
            configure_logging(console=False, directory=Path(tmp))
            self.assertEqual(len(get_logger().handlers), 1)
            shutdown_logging()
            self.assertEqual(get_logger().handlers, [])

    def test_formatter_omits_absent_context(self):
        record = logging.LogRecord("scalersync", logging.WARNING, __file__, 1, "link silent", None, None)
        record.step = "Reconfig"
        payload = json.loads(JsonFormatter().format(record))
        self.assertEqual(payload["step"], "Reconfig")
        self.assertEqual(payload["level"], "WARNING")
        self.assertNotIn("event", payload)
        self.assertNotIn("exc", payload)


if __name__ == "__main__":
    unittest.main()

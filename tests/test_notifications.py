import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from notifications import NotificationQueue, make_notification


class TestNotificationQueue(unittest.TestCase):
    def test_push_pending_order(self) -> None:
        queue = NotificationQueue()
        queue.success("Saved", page="staff")
        queue.error("Failed", page="classes")
        pending = queue.pending()
        self.assertEqual([n["level"] for n in pending], ["success", "error"])
        self.assertEqual([n["message"] for n in queue.pending(page="classes")], ["Failed"])

    def test_ack(self) -> None:
        queue = NotificationQueue()
        item = queue.success("Saved")
        self.assertTrue(queue.ack(item["id"]))
        self.assertEqual(queue.pending(), [])
        self.assertFalse(queue.ack(item["id"]))

    def test_pending_returns_copies(self) -> None:
        queue = NotificationQueue()
        queue.success("Saved")
        queue.pending()[0]["message"] = "changed"
        self.assertEqual(queue.pending()[0]["message"], "Saved")
        queue.clear()
        self.assertEqual(queue.pending(), [])

    def test_rejects_bad_input(self) -> None:
        with self.assertRaises(ValueError):
            make_notification("warning", "x")
        with self.assertRaises(ValueError):
            make_notification("error", "   ")


if __name__ == "__main__":
    unittest.main()

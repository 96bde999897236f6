import os
import sys
import unittest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from fastapi.testclient import TestClient

os.environ["APPER_PROJECT_ID"] = ""
os.environ["APPER_PUBLIC_KEY"] = ""
os.environ["SCHOLAR_MOCK_LATENCY_MS"] = "0"
os.environ["SCHOLAR_MOCK_JITTER_MS"] = "0"

import app.main as main
from app.pages import PageController


class TestRecordsApi(unittest.TestCase):
    def setUp(self) -> None:
        self.client = TestClient(main.app)

    def test_health(self) -> None:
        body = self.client.get("/health").json()
        self.assertEqual(body, {"ok": True, "store": "memory"})

    def test_list_is_sorted_and_searchable(self) -> None:
        body = self.client.get("/records/staff").json()
        self.assertTrue(body["ok"], body)
        names = [r["Name"] for r in body["records"]]
        self.assertEqual(names, sorted(names, key=str.casefold))
        body = self.client.get("/records/staff", params={"q": "raman"}).json()
        self.assertEqual([r["Name"] for r in body["records"]], ["Priya Raman"])
        self.assertGreaterEqual(body["total"], 1)

    def test_by_category(self) -> None:
        body = self.client.get("/records/staff/by/Teaching").json()
        self.assertTrue(body["ok"], body)
        self.assertTrue(body["records"])
        self.assertTrue(all(r["Department"] == "Teaching" for r in body["records"]))

    def test_unknown_entity(self) -> None:
        res = self.client.get("/records/teachers")
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.json()["errors"][0]["code"], "ENTITY_NOT_FOUND")

    def test_missing_record(self) -> None:
        res = self.client.get("/records/class/9999")
        self.assertEqual(res.status_code, 404)
        body = res.json()
        self.assertFalse(body["ok"])
        self.assertEqual(body["errors"][0]["code"], "RECORD_NOT_FOUND")
        self.assertEqual(body["warnings"], [])

    def test_create_update_delete(self) -> None:
        record = {"Name": "Robotics", "Subject": "Technology", "Teacher": "Kevin Zhang", "Capacity": "20"}
        res = self.client.post("/records/class", json={"record": record})
        body = res.json()
        self.assertTrue(body["ok"], body)
        record_id = body["record_id"]
        self.assertEqual(body["record"]["Capacity"], 20)
        self.assertEqual(body["record"]["Status"], "Active")

        res = self.client.put(f"/records/class/{record_id}", json={"Room": "D-101"})
        body = res.json()
        self.assertTrue(body["ok"], body)
        self.assertEqual(body["record"]["Room"], "D-101")
        self.assertEqual(body["record"]["Teacher"], "Kevin Zhang")

        res = self.client.delete(f"/records/class/{record_id}")
        self.assertTrue(res.json()["deleted"])
        self.assertEqual(self.client.get(f"/records/class/{record_id}").status_code, 404)
        self.assertEqual(self.client.delete(f"/records/class/{record_id}").status_code, 404)

    def test_validation_errors_per_field(self) -> None:
        res = self.client.post("/records/staff", json={"Name": "", "Email": "bad"})
        self.assertEqual(res.status_code, 400)
        body = res.json()
        by_path = {e["path"]: e for e in body["errors"]}
        self.assertEqual(by_path["Email"]["message"], "Please enter a valid email address")
        self.assertEqual(by_path["Name"]["code"], "VALIDATION_FAILED")

    def test_nav(self) -> None:
        self.client.post("/pages/classes/load")
        body = self.client.get("/nav").json()
        items = {item["id"]: item for item in body["items"]}
        self.assertEqual(items["students"]["href"], "/")
        self.assertGreater(items["classes"]["count"], 0)
        self.assertEqual(body["app"]["name"], "Scholar Hub")

    def test_nav_counts_classes_before_page_opens(self) -> None:
        original = main.controllers["classes"]
        main.controllers["classes"] = PageController(original.meta, original.service, main.notifications)
        try:
            body = self.client.get("/nav").json()
            items = {item["id"]: item for item in body["items"]}
            self.assertEqual(items["classes"]["count"], len(main.services["class"].get_all()))
            self.assertGreater(items["classes"]["count"], 0)
        finally:
            main.controllers["classes"] = original


if __name__ == "__main__":
    unittest.main()

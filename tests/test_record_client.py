import json
import os
import sys
import unittest

import httpx


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from app.entities import ENTITIES
from app.errors import NotFound, StoreRejected, TransportFailure, ValidationFailed
from app.outcomes import Paging
from app.record_client import RecordStoreClient
from app.services import EntityService
from app.stores_remote import RemoteRecordStore


BASE_URL = "https://records.example.test/v1"


class _Recorder:
    def __init__(self, responder) -> None:
        self.requests = []
        self._responder = responder

    def __call__(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content.decode("utf-8")) if request.content else None
        self.requests.append((request, payload))
        return self._responder(request, payload)


def _client(responder) -> tuple[RecordStoreClient, _Recorder]:
    recorder = _Recorder(responder)
    client = RecordStoreClient(BASE_URL, "proj-1", "pk-1", timeout=5.0, transport=httpx.MockTransport(recorder))
    return client, recorder


class TestRecordStoreClient(unittest.TestCase):
    def test_fetch_records_wire_format(self) -> None:
        def responder(request, payload):
            return httpx.Response(200, json={"success": True, "data": [{"Id": 1, "Name": "Ann"}, "junk"]})

        client, recorder = _client(responder)
        rows = client.fetch_records(
            "staff_c",
            ["Id", "Name"],
            where={"Department": "Teaching"},
            order_by=[("Name", "asc")],
            paging=Paging(limit=50, offset=10),
        )
        self.assertEqual(rows, [{"Id": 1, "Name": "Ann"}])
        request, payload = recorder.requests[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(str(request.url), f"{BASE_URL}/tables/staff_c/fetchRecords")
        self.assertEqual(request.headers["X-Apper-Project-Id"], "proj-1")
        self.assertEqual(request.headers["Authorization"], "Bearer pk-1")
        self.assertEqual(payload["fields"], [{"field": {"Name": "Id"}}, {"field": {"Name": "Name"}}])
        self.assertEqual(payload["where"], [{"FieldName": "Department", "Operator": "EqualTo", "Values": ["Teaching"]}])
        self.assertEqual(payload["orderBy"], [{"fieldName": "Name", "sorttype": "ASC"}])
        self.assertEqual(payload["pagingInfo"], {"limit": 50, "offset": 10})

    def test_success_false_raises_store_rejected(self) -> None:
        client, _ = _client(lambda request, payload: httpx.Response(200, json={"success": False, "message": "Table locked"}))
        with self.assertRaises(StoreRejected) as ctx:
            client.fetch_records("staff_c", ["Id"])
        self.assertEqual(ctx.exception.message, "Table locked")

    def test_http_error_prefers_server_message(self) -> None:
        client, _ = _client(lambda request, payload: httpx.Response(503, json={"message": "Maintenance window"}))
        with self.assertRaises(TransportFailure) as ctx:
            client.fetch_records("staff_c", ["Id"])
        self.assertEqual(ctx.exception.message, "Maintenance window")
        self.assertEqual(ctx.exception.status_code, 503)

    def test_http_error_falls_back_to_reason(self) -> None:
        client, _ = _client(lambda request, payload: httpx.Response(500, text="boom"))
        with self.assertRaises(TransportFailure) as ctx:
            client.fetch_records("staff_c", ["Id"])
        self.assertEqual(ctx.exception.message, "Record store error: 500 Internal Server Error")

    def test_network_error(self) -> None:
        def responder(request, payload):
            raise httpx.ConnectError("connection refused", request=request)

        client, _ = _client(responder)
        with self.assertRaises(TransportFailure) as ctx:
            client.fetch_records("staff_c", ["Id"])
        self.assertIn("connection refused", ctx.exception.message)
        self.assertIsNone(ctx.exception.status_code)

    def test_get_record_by_id_missing(self) -> None:
        client, _ = _client(lambda request, payload: httpx.Response(200, json={"success": True, "data": None}))
        with self.assertRaises(NotFound):
            client.get_record_by_id("staff_c", 5, ["Id"])
        client, _ = _client(lambda request, payload: httpx.Response(404, json={"message": "Record does not exist"}))
        with self.assertRaises(NotFound) as ctx:
            client.get_record_by_id("staff_c", 5, ["Id"])
        self.assertEqual(ctx.exception.record_id, 5)

    def test_partial_batch_failure(self) -> None:
        def responder(request, payload):
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "results": [
                        {"success": True, "data": {"Id": 10, "Name": "Ann"}},
                        {
                            "success": False,
                            "message": "Record rejected",
                            "errors": [{"fieldLabel": "Email", "message": "is required"}],
                        },
                    ],
                },
            )

        client, recorder = _client(responder)
        batch = client.create_record("staff_c", [{"Name": "Ann"}, {"Name": "Bob"}])
        self.assertTrue(batch.failed)
        self.assertEqual(batch.records(), [{"Id": 10, "Name": "Ann"}])
        self.assertEqual(batch.messages, ["Email: is required", "Record rejected"])
        self.assertEqual(batch.failures[0].field_errors, {"Email": "is required"})
        with self.assertRaises(StoreRejected) as ctx:
            batch.raise_for_failures()
        self.assertEqual(ctx.exception.message, "Email: is required, Record rejected")
        self.assertEqual(recorder.requests[0][1], {"records": [{"Name": "Ann"}, {"Name": "Bob"}]})

    def test_delete_sends_record_ids(self) -> None:
        def responder(request, payload):
            return httpx.Response(200, json={"success": True, "results": [{"success": True}]})

        client, recorder = _client(responder)
        batch = client.delete_record("staff_c", [4])
        self.assertFalse(batch.failed)
        self.assertEqual(batch.outcomes[0].record_id, 4)
        request, payload = recorder.requests[0]
        self.assertTrue(str(request.url).endswith("/tables/staff_c/deleteRecord"))
        self.assertEqual(payload, {"RecordIds": [4]})

    def test_missing_results_count_as_failures(self) -> None:
        client, _ = _client(lambda request, payload: httpx.Response(200, json={"success": True}))
        batch = client.update_record("staff_c", [{"Id": 1}])
        self.assertTrue(batch.failed)
        self.assertEqual(batch.failures[0].record_id, 1)


class TestRemoteRecordStore(unittest.TestCase):
    def _store(self, responder):
        client, recorder = _client(responder)
        return RemoteRecordStore(client, ENTITIES.values()), recorder

    def test_fetch_uses_plain_staff_names(self) -> None:
        def responder(request, payload):
            return httpx.Response(
                200,
                json={"success": True, "data": [{"Id": 1, "Name": "Ann", "HireDate": "2020-01-01", "Owner": "x"}]},
            )

        store, recorder = self._store(responder)
        rows = store.fetch_all("staff_c", where={"Department": "Teaching"}, order_by=[("Name", "ASC")])
        self.assertEqual(rows, [{"Id": 1, "Name": "Ann", "HireDate": "2020-01-01"}])
        payload = recorder.requests[0][1]
        self.assertIn({"field": {"Name": "Salary"}}, payload["fields"])
        self.assertEqual(payload["where"][0]["FieldName"], "Department")

    def test_fetch_translates_custom_field_names(self) -> None:
        def responder(request, payload):
            return httpx.Response(
                200,
                json={"success": True, "data": [{"Id": 2, "Name": "Maya", "grade_level_c": "10th Grade"}]},
            )

        store, recorder = self._store(responder)
        rows = store.fetch_all("student_c", where={"GradeLevel": "10th Grade"})
        self.assertEqual(rows, [{"Id": 2, "Name": "Maya", "GradeLevel": "10th Grade"}])
        payload = recorder.requests[0][1]
        self.assertIn({"field": {"Name": "gpa_c"}}, payload["fields"])
        self.assertEqual(payload["where"][0]["FieldName"], "grade_level_c")

    def test_create_translates_both_ways(self) -> None:
        def responder(request, payload):
            record = dict(payload["records"][0], Id=7)
            return httpx.Response(200, json={"success": True, "results": [{"success": True, "data": record}]})

        store, recorder = self._store(responder)
        batch = store.create("student_c", [{"Name": "Ann", "EnrollmentDate": "2020-01-01", "GPA": 3.2}])
        self.assertEqual(recorder.requests[0][1]["records"][0], {"Name": "Ann", "enrollment_date_c": "2020-01-01", "gpa_c": 3.2})
        self.assertEqual(batch.records(), [{"Id": 7, "Name": "Ann", "EnrollmentDate": "2020-01-01", "GPA": 3.2}])

    def test_service_maps_store_field_errors(self) -> None:
        def responder(request, payload):
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "results": [{"success": False, "errors": [{"fieldLabel": "Email", "message": "already exists"}]}],
                },
            )

        store, _ = self._store(responder)
        service = EntityService(ENTITIES["staff"], store)
        draft = {"Name": "Ann", "Email": "ann@school.edu", "Department": "Teaching", "Position": "Teacher"}
        with self.assertRaises(ValidationFailed) as ctx:
            service.create(draft)
        self.assertEqual(ctx.exception.errors, {"Email": "already exists"})


if __name__ == "__main__":
    unittest.main()

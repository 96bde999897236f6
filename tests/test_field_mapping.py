import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from app.entities import CHILD, STAFF, STUDENT
from app.field_mapping import FieldMap, backend_field_name


class TestFieldMapping(unittest.TestCase):
    def test_backend_field_names(self) -> None:
        self.assertEqual(backend_field_name("Id"), "Id")
        self.assertEqual(backend_field_name("Name"), "Name")
        self.assertEqual(backend_field_name("HireDate"), "hire_date_c")
        self.assertEqual(backend_field_name("Email"), "email_c")
        self.assertEqual(backend_field_name("GPA"), "gpa_c")
        self.assertEqual(backend_field_name("PendingAssignments"), "pending_assignments_c")

    def test_round_trip_drops_unknown(self) -> None:
        fmap = FieldMap.for_schema(STUDENT)
        backend = fmap.to_backend({"Id": 3, "Name": "Ann", "EnrollmentDate": "2020-01-01", "Bogus": 1})
        self.assertEqual(backend, {"Id": 3, "Name": "Ann", "enrollment_date_c": "2020-01-01"})
        canonical = fmap.to_canonical({"Id": 3, "Name": "Ann", "gpa_c": 3.5, "CreatedOn": "x"})
        self.assertEqual(canonical, {"Id": 3, "Name": "Ann", "GPA": 3.5})

    def test_staff_fields_keep_plain_names(self) -> None:
        fmap = FieldMap.for_schema(STAFF)
        self.assertEqual(fmap.backend_names(STAFF.read_fields), STAFF.read_fields)
        backend = fmap.to_backend({"Id": 3, "HireDate": "2020-01-01", "Salary": 10.0, "Bogus": 1})
        self.assertEqual(backend, {"Id": 3, "HireDate": "2020-01-01", "Salary": 10.0})
        self.assertIsNone(fmap.canonical_name("hire_date_c"))

    def test_backend_names_for_read_fields(self) -> None:
        fmap = FieldMap.for_schema(STUDENT)
        names = fmap.backend_names(STUDENT.read_fields)
        self.assertEqual(names[:3], ["Id", "Name", "email_c"])
        self.assertIn("grade_level_c", names)
        self.assertEqual(fmap.canonical_name("class_name_c"), "ClassName")

    def test_unknown_field_raises(self) -> None:
        fmap = FieldMap.for_schema(CHILD)
        with self.assertRaises(KeyError):
            fmap.backend_name("Salary")


if __name__ == "__main__":
    unittest.main()

import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from scholar.listing import ASC, DESC, SortState, filter_records, sort_records


STAFF = [
    {"Id": 1, "Name": "Margaret Ellis", "Email": "m.ellis@scholarhub.edu", "Department": "Administration", "Position": "Principal"},
    {"Id": 2, "Name": "Priya Raman", "Email": "p.raman@scholarhub.edu", "Department": "Teaching", "Position": "Teacher"},
    {"Id": 3, "Name": "Tom Becker", "Email": "t.becker@scholarhub.edu", "Department": "Teaching", "Position": "Assistant Teacher"},
    {"Id": 4, "Name": "Lucia Moreno", "Email": "l.moreno@scholarhub.edu", "Department": "Library", "Position": "Librarian"},
]
FIELDS = ("Name", "Email", "Department", "Position")


class TestFilterRecords(unittest.TestCase):
    def test_blank_term_returns_input(self) -> None:
        for term in ("", "   ", None):
            self.assertEqual(filter_records(STAFF, term, FIELDS), STAFF)

    def test_case_insensitive_substring(self) -> None:
        result = filter_records(STAFF, "  TEACH ", FIELDS)
        self.assertEqual([r["Id"] for r in result], [2, 3])

    def test_matches_any_field(self) -> None:
        result = filter_records(STAFF, "moreno@", FIELDS)
        self.assertEqual([r["Id"] for r in result], [4])
        result = filter_records(STAFF, "library", FIELDS)
        self.assertEqual([r["Id"] for r in result], [4])

    def test_result_is_ordered_subsequence(self) -> None:
        term = "e"
        result = filter_records(STAFF, term, FIELDS)
        ids = [r["Id"] for r in result]
        self.assertEqual(ids, sorted(ids))
        for record in STAFF:
            hit = any(term in str(record.get(f, "")).lower() for f in FIELDS)
            self.assertEqual(hit, record in result)

    def test_non_searchable_fields_ignored(self) -> None:
        records = [{"Id": 1, "Name": "Ann", "Notes": "bob"}]
        self.assertEqual(filter_records(records, "bob", ("Name",)), [])

    def test_missing_and_list_values(self) -> None:
        records = [{"Id": 1, "Name": None}, {"Id": 2, "Subjects": ["Math", "Biology"]}]
        result = filter_records(records, "bio", ("Name", "Subjects"))
        self.assertEqual([r["Id"] for r in result], [2])


class TestSortRecords(unittest.TestCase):
    def test_select_toggles_direction(self) -> None:
        state = SortState().select("Name")
        self.assertEqual((state.key, state.direction), ("Name", ASC))
        state = state.select("Name")
        self.assertEqual(state.direction, DESC)
        state = state.select("Name")
        self.assertEqual(state.direction, ASC)

    def test_new_key_resets_to_ascending(self) -> None:
        state = SortState().select("Name").select("Name").select("Email")
        self.assertEqual((state.key, state.direction), ("Email", ASC))

    def test_text_is_case_insensitive(self) -> None:
        records = [{"Name": "bob"}, {"Name": "Ann"}, {"Name": "carl"}]
        result = sort_records(records, SortState(key="Name"))
        self.assertEqual([r["Name"] for r in result], ["Ann", "bob", "carl"])

    def test_numbers_and_dates(self) -> None:
        records = [{"Salary": 100}, {"Salary": 20.5}, {"Salary": 3}]
        result = sort_records(records, SortState(key="Salary", direction=DESC))
        self.assertEqual([r["Salary"] for r in result], [100, 20.5, 3])
        records = [{"HireDate": "2020-10-12"}, {"HireDate": "2012-08-15"}, {"HireDate": "2015-07-01"}]
        result = sort_records(records, SortState(key="HireDate"))
        self.assertEqual([r["HireDate"] for r in result], ["2012-08-15", "2015-07-01", "2020-10-12"])

    def test_missing_values_last_both_directions(self) -> None:
        records = [{"Id": 1, "Salary": None}, {"Id": 2, "Salary": 5}, {"Id": 3}, {"Id": 4, "Salary": 9}]
        asc = sort_records(records, SortState(key="Salary"))
        desc = sort_records(records, SortState(key="Salary", direction=DESC))
        self.assertEqual([r["Id"] for r in asc], [2, 4, 1, 3])
        self.assertEqual([r["Id"] for r in desc], [4, 2, 1, 3])

    def test_stable_for_equal_keys(self) -> None:
        records = [{"Id": 1, "Dept": "A"}, {"Id": 2, "Dept": "a"}, {"Id": 3, "Dept": "A"}]
        result = sort_records(records, SortState(key="Dept"))
        self.assertEqual([r["Id"] for r in result], [1, 2, 3])

    def test_no_key_keeps_order(self) -> None:
        self.assertEqual(sort_records(STAFF, SortState()), STAFF)


if __name__ == "__main__":
    unittest.main()

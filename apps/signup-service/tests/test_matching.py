import sys
import unittest
from pathlib import Path

SERVICE_ROOT = Path(__file__).resolve().parents[1]
if str(SERVICE_ROOT) not in sys.path:
    sys.path.insert(0, str(SERVICE_ROOT))

from signup_widget.geography import GeographyTable, fallback_table, parse_country_data  # noqa: E402
from signup_widget.matching import (  # noqa: E402
    humanize_key,
    match_field,
    normalize_key,
    reconcile_submission,
    resolve_value,
)
from signup_widget.models import FormField  # noqa: E402
from signup_widget.schema import coerce_fields  # noqa: E402

SCHEMA = coerce_fields(
    [
        {"id": 1, "type": "text", "label": "First Name", "role": "first_name"},
        {"id": 2, "type": "text", "label": "Last Name", "role": "last_name"},
        {"id": 3, "type": "email", "label": "Email", "role": "email"},
        {"id": 4, "type": "text", "label": "Company"},
        {"id": 5, "type": "select", "label": "Country", "role": "country"},
        {"id": 6, "type": "text", "label": "State", "role": "state"},
        {"id": 7, "type": "radio", "label": "Plan", "options": [{"label": "Basic plan", "value": "basic"}]},
        {"id": 8, "type": "checkbox", "label": "I accept the terms"},
        {"id": 9, "type": "checkbox", "label": "Interests", "options": [{"label": "Tea", "value": "tea"}, "Coffee"]},
        {"id": 10, "type": "file", "label": "Proof"},
    ]
)


def _field(field_id):
    return next(field for field in SCHEMA if field.id == field_id)


class MatchFieldTests(unittest.TestCase):
    def test_priority_roles_win(self):
        fields = coerce_fields([{"label": "Name"}, {"role": "first_name", "label": "First"}])
        matched = match_field("First", fields)
        self.assertEqual(matched.role, "first_name")
        self.assertEqual(match_field("Name", fields).label, "Name")

    def test_normalized_and_contained_keys(self):
        self.assertEqual(match_field("first_name", SCHEMA).id, 1)
        self.assertEqual(match_field("COMPANY", SCHEMA).id, 4)
        self.assertEqual(match_field("company_size", SCHEMA).id, 4)

    def test_role_hints(self):
        fields = coerce_fields([{"label": "Region", "role": "state"}, {"label": "Nation", "role": "country"}])
        self.assertEqual(match_field("province", fields).label, "Region")
        self.assertEqual(match_field("country_code", fields).label, "Nation")

    def test_no_match(self):
        self.assertIsNone(match_field("favourite colour", SCHEMA))
        self.assertIsNone(match_field("", SCHEMA))

    def test_key_helpers(self):
        self.assertEqual(normalize_key("First-Name 2"), "firstname2")
        self.assertEqual(humanize_key("referralSource"), "referral Source")
        self.assertEqual(humanize_key("company_size"), "company size")


class ResolveValueTests(unittest.TestCase):
    def setUp(self):
        self.geography = fallback_table()

    def test_country_code_resolves_to_name(self):
        self.assertEqual(resolve_value(_field(5), "US", self.geography), "United States")
        self.assertEqual(resolve_value(_field(5), "Atlantis", self.geography), "Atlantis")

    def test_state_uses_sibling_country(self):
        data = {"Country": "CA", "State": "QC"}
        self.assertEqual(resolve_value(_field(6), "QC", self.geography, data, SCHEMA), "Quebec")
        data = {"Country": "US", "State": "CA"}
        self.assertEqual(resolve_value(_field(6), "CA", self.geography, data, SCHEMA), "California")

    def test_state_without_sibling_scans_all_countries(self):
        self.assertEqual(resolve_value(_field(6), "on", self.geography), "Ontario")
        self.assertEqual(resolve_value(_field(6), "Nowhere", self.geography), "Nowhere")

    def test_sibling_country_is_found_by_key_without_a_schema(self):
        table = GeographyTable(
            parse_country_data(
                [
                    {"countryName": "United States", "countryShortCode": "US",
                     "regions": [{"name": "Washington", "shortCode": "WA"}]},
                    {"countryName": "Australia", "countryShortCode": "AU",
                     "regions": [{"name": "Western Australia", "shortCode": "WA"}]},
                ]
            )
        )
        state = FormField(label="State", role="state")
        self.assertEqual(
            resolve_value(state, "WA", table, {"Country": "AU", "State": "WA"}), "Western Australia"
        )
        self.assertEqual(
            resolve_value(state, "WA", table, {"country_code": "United States"}), "Washington"
        )

    def test_options_match_value_then_label(self):
        self.assertEqual(resolve_value(_field(7), "BASIC", self.geography), "Basic plan")
        self.assertEqual(resolve_value(_field(7), "basic plan", self.geography), "Basic plan")
        self.assertEqual(resolve_value(_field(7), "pro", self.geography), "pro")

    def test_checkbox_truthy_values(self):
        self.assertEqual(resolve_value(_field(8), "on", self.geography), "I accept the terms")
        self.assertEqual(resolve_value(_field(8), True, self.geography), "I accept the terms")
        self.assertEqual(resolve_value(_field(8), "no", self.geography), "no")

    def test_checkbox_group_lists_join(self):
        self.assertEqual(resolve_value(_field(9), ["tea", "Coffee"], self.geography), "Tea, Coffee")


class ReconcileSubmissionTests(unittest.TestCase):
    def setUp(self):
        self.geography = fallback_table()
        self.request = {
            "id": "req-1",
            "email": "ada@example.com",
            "data": {
                "referralSource": "Friend",
                "Country": "US",
                "State": "NY",
                "Email": "ada@example.com",
                "Last Name": "Lovelace",
                "Password": "secret123",
                "First Name": "Ada",
                "Company": "Analytical Engines",
            },
            "files": [{"name": "Proof", "url": "https://cdn.example.com/uploads/proof.pdf"}],
        }

    def test_rows_are_ordered_and_resolved(self):
        rows = reconcile_submission(self.request, SCHEMA, self.geography)
        self.assertEqual(
            [row.label for row in rows],
            ["First Name", "Last Name", "Email", "Company", "Country", "State", "Proof", "referral Source"],
        )
        by_label = {row.label: row for row in rows}
        self.assertEqual(by_label["Country"].display_value, "United States")
        self.assertEqual(by_label["State"].display_value, "New York")
        self.assertEqual(by_label["Company"].field_id, 4)
        self.assertIsNone(by_label["referral Source"].field_id)

    def test_passwords_are_hidden_unless_requested(self):
        hidden = reconcile_submission(self.request, SCHEMA, self.geography)
        self.assertNotIn("Password", [row.raw_key for row in hidden])
        shown = reconcile_submission(self.request, SCHEMA, self.geography, include_sensitive=True)
        self.assertIn("Password", [row.raw_key for row in shown])

    def test_files_are_flagged(self):
        rows = reconcile_submission(self.request, SCHEMA, self.geography)
        proof = next(row for row in rows if row.label == "Proof")
        self.assertTrue(proof.is_file)
        self.assertEqual(proof.display_value, "proof.pdf")
        self.assertEqual(proof.field_id, 10)

    def test_untrusted_input_never_raises(self):
        self.assertEqual(reconcile_submission({"data": "garbage"}, SCHEMA, self.geography), [])
        self.assertEqual(reconcile_submission(None, [], self.geography), [])


if __name__ == "__main__":
    unittest.main()

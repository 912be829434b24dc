import os
import sys
import unittest
from pathlib import Path
from unittest import mock

from fastapi.testclient import TestClient

SERVICE_ROOT = Path(__file__).resolve().parents[1]
if str(SERVICE_ROOT) not in sys.path:
    sys.path.insert(0, str(SERVICE_ROOT))

from signup_widget import main  # noqa: E402
from signup_widget.geography import fallback_table  # noqa: E402

FORM_FIELDS = [
    {"id": 1, "type": "text", "label": "First Name", "role": "first_name", "required": True, "rowGroup": 1},
    {"id": 2, "type": "text", "label": "Last Name", "role": "last_name", "required": True, "rowGroup": 1},
    {"id": 3, "type": "email", "label": "Email", "role": "email", "required": True},
    {"id": 4, "type": "select", "label": "Country", "role": "country"},
]


class SignupServiceTests(unittest.TestCase):
    def setUp(self):
        self._env_backup = os.environ.get("ENABLE_DEV_ROUTES")
        os.environ.pop("ENABLE_DEV_ROUTES", None)
        self._geography = mock.patch("signup_widget.main.get_geography_table", return_value=fallback_table())
        self._geography.start()
        self.client = TestClient(main.app)

    def tearDown(self):
        self._geography.stop()
        if self._env_backup is None:
            os.environ.pop("ENABLE_DEV_ROUTES", None)
        else:
            os.environ["ENABLE_DEV_ROUTES"] = self._env_backup

    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["ok"])

    def test_generate_script(self):
        response = self.client.post(
            "/generate-signup-script",
            json={"formFields": FORM_FIELDS, "containerId": "shop-signup", "theme": {"title": "Join"}},
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data["ok"])
        self.assertEqual(data["path"], "/custom-signup.min.js")
        self.assertIn('"containerId":"shop-signup"', data["content"])
        self.assertEqual(data["warnings"], [])

    def test_generate_script_coerces_numeric_container_id(self):
        response = self.client.post("/generate-signup-script", json={"formFields": FORM_FIELDS, "containerId": 5})
        self.assertEqual(response.status_code, 200)
        self.assertIn('"containerId":"5"', response.json()["content"])

    def test_generate_script_can_insert_core_fields(self):
        response = self.client.post(
            "/generate-signup-script",
            json={"formFields": [{"id": 1, "type": "text", "label": "Company"}], "ensureCoreFields": True},
        )
        self.assertEqual(response.status_code, 200)
        content = response.json()["content"]
        self.assertIn('"key":"Password"', content)
        self.assertIn('"key":"Company"', content)

    def test_generate_script_rejects_non_list_fields(self):
        response = self.client.post("/generate-signup-script", json={"formFields": "nope"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json().get("detail"), "Invalid formFields")

    def test_generate_script_reports_warnings_unless_strict(self):
        fields = FORM_FIELDS + [{"id": 5, "type": "email", "label": "Backup email", "role": "email"}]
        response = self.client.post("/generate-signup-script", json={"formFields": fields})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()["warnings"]), 1)

        strict = self.client.post("/generate-signup-script", json={"formFields": fields, "strict": True})
        self.assertEqual(strict.status_code, 422)
        self.assertEqual(strict.json()["detail"][0]["path"], "fields[4].role")

    def test_preview(self):
        response = self.client.post(
            "/preview",
            json={"formFields": FORM_FIELDS, "viewMode": "mobile", "selectedCountry": "CA"},
        )
        self.assertEqual(response.status_code, 200)
        html = response.json()["html"]
        self.assertIn('<option value="CA" selected>Canada</option>', html)
        self.assertIn('id="preview-mobile"', html)

    def test_validate_schema(self):
        response = self.client.post(
            "/form-schema/validate",
            json={"fields": [{"id": 1, "label": ""}], "theme": {}},
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertFalse(data["ok"])
        self.assertEqual(data["issues"][0]["path"], "fields[0].label")
        self.assertNotIn("fields", data)

    def test_validate_schema_with_core_fields(self):
        response = self.client.post("/form-schema/validate", json={"fields": FORM_FIELDS, "ensureCoreFields": True})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data["ok"])
        self.assertEqual(
            [field["role"] for field in data["fields"]],
            ["first_name", "last_name", "email", "password", "country"],
        )
        self.assertEqual(data["fields"][3]["id"], 5)
        self.assertTrue(data["fields"][0]["locked"])

    def test_validate_submission(self):
        response = self.client.post(
            "/signup-requests/validate",
            json={"formFields": FORM_FIELDS, "data": {"First Name": "Ada", "Email": "nope"}},
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertFalse(data["ok"])
        self.assertEqual(
            data["errors"],
            {"Last Name": "This field is required", "Email": "Enter a valid email"},
        )

    def test_validate_submission_requires_data_object(self):
        response = self.client.post("/signup-requests/validate", json={"formFields": FORM_FIELDS, "data": []})
        self.assertEqual(response.status_code, 400)

    def test_geography(self):
        response = self.client.get("/geography")
        self.assertEqual(response.status_code, 200)
        codes = [entry["countryShortCode"] for entry in response.json()["countries"]]
        self.assertIn("GB", codes)

    def test_reconcile(self):
        response = self.client.post(
            "/signup-requests/reconcile",
            json={
                "formFields": FORM_FIELDS,
                "request": {"data": {"Country": "GB", "Email": "a@b.co", "First Name": "Ada", "password": "x1"}},
            },
        )
        self.assertEqual(response.status_code, 200)
        rows = response.json()["rows"]
        self.assertEqual([row["label"] for row in rows], ["First Name", "Email", "Country"])
        self.assertEqual(rows[2]["displayValue"], "United Kingdom")
        self.assertEqual(rows[2]["fieldId"], 4)

    def test_customer_draft(self):
        response = self.client.post(
            "/signup-requests/customer-draft",
            json={"request": {"email": "ada@example.com", "data": {"Full Name": "Ada Lovelace", "Password": "abc12345"}}},
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["first_name"], "Ada")
        self.assertEqual(data["last_name"], "Lovelace")
        self.assertTrue(data["hasPassword"])
        self.assertNotIn("password", data)
        self.assertEqual(data["addresses"], [])

    def test_customer_draft_without_email(self):
        response = self.client.post("/signup-requests/customer-draft", json={"request": {"data": {"Name": "Ada"}}})
        self.assertEqual(response.status_code, 422)

    def test_dev_route_disabled_without_flag(self):
        response = self.client.post("/dev/geography-refresh")
        self.assertEqual(response.status_code, 404)

    def test_dev_route_enabled_with_flag(self):
        os.environ["ENABLE_DEV_ROUTES"] = "true"
        with mock.patch("signup_widget.main.reset_geography_cache") as reset:
            response = self.client.post("/dev/geography-refresh")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["countries"], 6)
        reset.assert_called_once()


if __name__ == "__main__":
    unittest.main()

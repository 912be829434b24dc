import sys
import unittest
from pathlib import Path

from pydantic import ValidationError

SERVICE_ROOT = Path(__file__).resolve().parents[1]
if str(SERVICE_ROOT) not in sys.path:
    sys.path.insert(0, str(SERVICE_ROOT))

from signup_widget import field_kinds  # noqa: E402
from signup_widget.models import FormField  # noqa: E402


def _field(**kwargs) -> FormField:
    return FormField.model_validate(kwargs)


class ValidateFieldValueTests(unittest.TestCase):
    def test_required_empty_reports_only_required(self):
        field = _field(type="email", label="Email", required=True)
        self.assertEqual(field_kinds.validate_field_value(field, "   "), field_kinds.REQUIRED_MESSAGE)
        self.assertEqual(field_kinds.validate_field_value(field, None), field_kinds.REQUIRED_MESSAGE)

    def test_optional_empty_passes(self):
        field = _field(type="email", label="Email")
        self.assertIsNone(field_kinds.validate_field_value(field, ""))

    def test_password_label_overlay_applies_to_text_fields(self):
        field = _field(type="text", label="Password")
        self.assertEqual(
            field_kinds.validate_field_value(field, "abc"),
            "Password must be 7+ chars and include letters and numbers",
        )
        self.assertIsNone(field_kinds.validate_field_value(field, "abc1234"))

    def test_plain_text_field_accepts_anything(self):
        field = _field(type="text", label="Nickname")
        self.assertIsNone(field_kinds.validate_field_value(field, "abc"))

    def test_type_checks(self):
        email = _field(type="email", label="Email")
        self.assertEqual(field_kinds.validate_field_value(email, "nope"), "Enter a valid email")
        self.assertIsNone(field_kinds.validate_field_value(email, "Ada@Example.com"))

        number = _field(type="number", label="Age")
        self.assertIsNone(field_kinds.validate_field_value(number, "12.5"))
        self.assertEqual(field_kinds.validate_field_value(number, "twelve"), "Enter a valid number")

        url = _field(type="url", label="Website")
        self.assertIsNone(field_kinds.validate_field_value(url, "https://example.com"))
        self.assertEqual(field_kinds.validate_field_value(url, "example dot com"), "Enter a valid URL")

        phone = _field(type="phone", label="Phone")
        self.assertEqual(field_kinds.validate_field_value(phone, "12"), "Enter a valid phone")
        self.assertIsNone(field_kinds.validate_field_value(phone, "+1 (555) 010-0000"))

    def test_postal_label_overlay(self):
        field = _field(type="text", label="Zip code")
        self.assertEqual(field_kinds.validate_field_value(field, "!!"), "Enter a valid postal code")
        self.assertIsNone(field_kinds.validate_field_value(field, "SW1A 1AA"))

    def test_label_overlay_message_wins_over_type_message(self):
        field = _field(type="email", label="Contact email")
        self.assertEqual(field_kinds.validate_field_value(field, "bad"), "Enter a valid phone")

    def test_phone_typed_field_skips_phone_label_overlay(self):
        field = _field(type="phone", label="Mobile")
        self.assertEqual(field_kinds.label_check_for(field), None)
        self.assertEqual(field_kinds.type_check_for(field), "phone")

    def test_unchecked_required_checkbox_is_empty(self):
        field = _field(type="checkbox", label="I accept the terms", required=True)
        self.assertEqual(field_kinds.validate_field_value(field, False), field_kinds.REQUIRED_MESSAGE)
        self.assertIsNone(field_kinds.validate_field_value(field, True))

    def test_validate_values_keys_by_label(self):
        fields = [
            _field(type="text", label="First Name", required=True),
            _field(type="email", label="", required=True),
            _field(type="file", label="Proof", required=True),
        ]
        errors = field_kinds.validate_values(fields, {"First Name": "Ada", "Field 2": "bad"})
        self.assertEqual(errors, {"Field 2": "Enter a valid email"})


class ControlKindTests(unittest.TestCase):
    def test_roles_take_precedence_over_types(self):
        self.assertEqual(field_kinds.control_kind(_field(type="text", role="country")), "country_select")
        self.assertEqual(field_kinds.control_kind(_field(type="select", role="state")), "state_control")

    def test_types_map_to_controls(self):
        cases = {
            "textarea": "textarea",
            "select": "select",
            "radio": "radio",
            "checkbox": "checkbox",
            "file": "file",
            "date": "input",
            "number": "input",
        }
        for field_type, kind in cases.items():
            with self.subTest(field_type=field_type):
                self.assertEqual(field_kinds.control_kind(_field(type=field_type)), kind)

    def test_checkbox_with_options_is_a_group(self):
        field = _field(type="checkbox", label="Interests", options=["Tea", "Coffee"])
        self.assertEqual(field_kinds.control_kind(field), "checkbox_group")

    def test_input_css_adds_px_to_bare_numbers(self):
        css = field_kinds.input_css(_field(borderWidth=2, borderRadius="1rem"))
        self.assertIn("border-width:2px", css)
        self.assertIn("border-radius:1rem", css)
        self.assertIn("padding:12px", css)
        self.assertIn("color:#0f172a", css)

    def test_label_text_marks_required(self):
        self.assertEqual(field_kinds.label_text(_field(label="Email", required=True)), "Email *")
        self.assertEqual(field_kinds.label_text(_field(label="Email")), "Email")


class RuleTests(unittest.TestCase):
    def test_rules_are_frozen_models_with_wire_shape(self):
        rule = field_kinds.RULES["email"]
        self.assertEqual(rule.to_wire()["message"], "Enter a valid email")
        self.assertTrue(rule.to_wire()["lowercase"])
        self.assertIsNone(field_kinds.RULES["url"].pattern)
        with self.assertRaises(ValidationError):
            rule.message = "changed"


class StateControlModeTests(unittest.TestCase):
    def test_regions_always_give_a_select(self):
        self.assertEqual(field_kinds.state_control_mode(True, True, True), "select")

    def test_locked_only_while_a_country_field_waits(self):
        self.assertEqual(field_kinds.state_control_mode(False, False, True), "locked")
        self.assertEqual(field_kinds.state_control_mode(False, True, True), "free_text")
        self.assertEqual(field_kinds.state_control_mode(False, False, False), "free_text")

    def test_plan_flags_state_fields_on_forms_with_a_country_field(self):
        state = _field(label="State", role="state")
        country = _field(label="Country", role="country")
        self.assertTrue(field_kinds.has_country_field([country, state]))
        self.assertFalse(field_kinds.has_country_field([state]))
        self.assertTrue(field_kinds.field_plan(state, 1, needs_country=True)["needsCountry"])
        self.assertFalse(field_kinds.field_plan(state, 0)["needsCountry"])
        self.assertFalse(field_kinds.field_plan(country, 0, needs_country=True)["needsCountry"])


if __name__ == "__main__":
    unittest.main()

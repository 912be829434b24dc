"""Single source of truth for how each field renders and validates.

The compiled widget, the live preview and ``validate_values`` all read the
tables and plans below, so the three stay in step. The widget receives the
plan as data and only interprets it.
"""

import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import quote, urlsplit

from pydantic import BaseModel, ConfigDict

from signup_widget.models import FormField

COUNTRY_PLACEHOLDER = "Select a country"
STATE_SELECT_PLACEHOLDER = "Select a state/province"
STATE_NEEDS_COUNTRY = "Select a country first"
STATE_FREE_TEXT = "Enter state/province"
OPTION_PLACEHOLDER = "Select an option"
REQUIRED_MESSAGE = "This field is required"

INPUT_DEFAULTS = {
    "border_color": "#e5e7eb",
    "border_width": "1",
    "border_radius": "10",
    "bg_color": "#fff",
    "padding": "12",
    "font_size": "14",
    "text_color": "#0f172a",
}

_PX_VALUE = re.compile(r"^[0-9]+(\.[0-9]+)?$")


class Rule(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    message: str
    pattern: Optional[str] = None
    lowercase: bool = False

    def to_wire(self) -> Dict[str, Any]:
        return {"pattern": self.pattern, "message": self.message, "lowercase": self.lowercase}


RULES: Dict[str, Rule] = {
    "email": Rule(
        name="email",
        message="Enter a valid email",
        pattern=r"^[^\s@]+@[^\s@]+\.[^\s@]+$",
        lowercase=True,
    ),
    "url": Rule(name="url", message="Enter a valid URL"),
    "number": Rule(name="number", message="Enter a valid number"),
    "phone": Rule(name="phone", message="Enter a valid phone", pattern=r"^[0-9\-+()\s]{7,}$"),
    "password": Rule(
        name="password",
        message="Password must be 7+ chars and include letters and numbers",
        pattern=r"^(?=.*[A-Za-z])(?=.*\d).{7,}$",
    ),
    "postal": Rule(name="postal", message="Enter a valid postal code", pattern=r"^[A-Za-z0-9 \-]{3,12}$"),
}

TYPE_CHECKS: Dict[str, str] = {"email": "email", "url": "url", "number": "number", "phone": "phone"}

# Label-text overlay applied after the declared-type check. First matching
# entry wins; an entry is skipped when the field already has the given type.
# Known false positive: a label such as "Contact preference" gets the phone rule.
LABEL_HEURISTICS: Tuple[Tuple[str, str, Optional[str]], ...] = (
    (r"password", "password", None),
    (r"phone|mobile|contact", "phone", "phone"),
    (r"zip|postal", "postal", None),
)

_COMPILED_RULES = {
    name: re.compile(rule.pattern, re.ASCII) for name, rule in RULES.items() if rule.pattern
}
_COMPILED_HEURISTICS = tuple(
    (re.compile(pattern, re.IGNORECASE), rule, skip) for pattern, rule, skip in LABEL_HEURISTICS
)
_JS_NUMBER = re.compile(
    r"^(?:[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|[+-]?Infinity|0[xX][0-9a-fA-F]+|0[bB][01]+|0[oO][0-7]+)$"
)
_URL_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")


def control_kind(field: FormField) -> str:
    if field.role == "country":
        return "country_select"
    if field.role == "state":
        return "state_control"
    if field.type == "textarea":
        return "textarea"
    if field.type == "select":
        return "select"
    if field.type == "radio":
        return "radio"
    if field.type == "checkbox":
        return "checkbox_group" if field.options else "checkbox"
    if field.type == "file":
        return "file"
    return "input"


def input_subtype(field: FormField) -> str:
    if field.type == "phone":
        return "tel"
    if field.role == "password":
        return "password"
    return field.type


def data_key(field: FormField, index: int) -> str:
    """Key under which the widget submits this field's value."""
    return field.label or f"Field {index + 1}"


def file_part_name(field: FormField, index: int) -> str:
    label = field.label or f"File {index + 1}"
    return "file__" + quote(label, safe="-_.!~*'()")


def type_check_for(field: FormField) -> Optional[str]:
    return TYPE_CHECKS.get(field.type)


def label_check_for(field: FormField) -> Optional[str]:
    label = field.label or ""
    for pattern, rule, skip_type in _COMPILED_HEURISTICS:
        if skip_type is not None and field.type == skip_type:
            continue
        if pattern.search(label):
            return rule
    return None


def _px(value: str) -> str:
    return value + "px" if _PX_VALUE.match(value) else value


def label_css(field: FormField) -> str:
    declarations: List[str] = []
    if field.label_color is not None:
        declarations.append(f"color:{field.label_color}")
    if field.label_size is not None:
        declarations.append(f"font-size:{_px(field.label_size)}")
    if field.label_weight is not None:
        declarations.append(f"font-weight:{field.label_weight}")
    declarations.extend(["display:block", "margin-bottom:6px"])
    return ";".join(declarations)


def input_css(field: FormField) -> str:
    def pick(name: str) -> str:
        value = getattr(field, name)
        return value if value is not None else INPUT_DEFAULTS[name]

    return ";".join(
        [
            f"border-color:{pick('border_color')}",
            f"border-width:{_px(pick('border_width'))}",
            "border-style:solid",
            f"border-radius:{_px(pick('border_radius'))}",
            f"background-color:{pick('bg_color')}",
            f"padding:{_px(pick('padding'))}",
            f"font-size:{_px(pick('font_size'))}",
            f"color:{pick('text_color')}",
            "width:100%",
            "outline:none",
        ]
    )


def label_text(field: FormField) -> str:
    return field.label + (" *" if field.required else "")


def has_country_field(fields: Sequence[FormField]) -> bool:
    return any(control_kind(field) == "country_select" for field in fields)


def state_control_mode(has_regions: bool, country_selected: bool, needs_country: bool) -> str:
    """Pick how a state field renders.

    ``select`` when the chosen country has regions. ``locked`` (a disabled text
    input) only while the form has a country field and nothing is chosen yet.
    Every other case is an enabled ``free_text`` input.
    """
    if has_regions:
        return "select"
    if needs_country and not country_selected:
        return "locked"
    return "free_text"


def field_plan(field: FormField, index: int, needs_country: bool = False) -> Dict[str, Any]:
    """Everything the widget runtime needs to render and validate one field.

    ``needs_country`` tells a state field that the form also carries a country
    field it should wait for.
    """
    kind = control_kind(field)
    return {
        "index": index,
        "kind": kind,
        "inputType": input_subtype(field) if kind == "input" else None,
        "label": field.label,
        "labelText": label_text(field),
        "key": data_key(field, index),
        "filePart": file_part_name(field, index) if kind == "file" else None,
        "placeholder": field.placeholder,
        "required": field.required,
        "isEmail": field.type == "email",
        "needsCountry": kind == "state_control" and needs_country,
        "typeCheck": type_check_for(field),
        "labelCheck": label_check_for(field),
        "options": [option.to_wire() for option in field.options],
        "labelCss": label_css(field),
        "inputCss": input_css(field),
    }


def is_empty(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set)):
        return len(value) == 0
    return False


def _url_ok(text: str) -> bool:
    if any(ch.isspace() for ch in text):
        return False
    parts = urlsplit(text)
    if not parts.scheme or not _URL_SCHEME.match(parts.scheme):
        return False
    return bool(parts.netloc or parts.path)


def rule_passes(name: str, value: Any) -> bool:
    text = str(value if value is not None else "").strip()
    if name == "url":
        return _url_ok(text)
    if name == "number":
        return bool(_JS_NUMBER.match(text))
    rule = RULES[name]
    if rule.lowercase:
        text = text.lower()
    return bool(_COMPILED_RULES[name].search(text))


def validate_field_value(field: FormField, value: Any) -> Optional[str]:
    """Return the error the widget would show for this value, or None.

    Order: required-empty (stops here), declared-type check, then the label
    overlay. When both later checks fail the overlay message is the one shown.
    """
    if is_empty(value):
        return REQUIRED_MESSAGE if field.required else None
    if isinstance(value, (bool, list, tuple)):
        return None

    error: Optional[str] = None
    type_check = type_check_for(field)
    if type_check and not rule_passes(type_check, value):
        error = RULES[type_check].message
    label_check = label_check_for(field)
    if label_check and not rule_passes(label_check, value):
        error = RULES[label_check].message
    return error


def validate_values(fields: Sequence[FormField], values: Mapping[str, Any]) -> Dict[str, str]:
    """Validate submitted values keyed the way the widget keys them (label text)."""
    errors: Dict[str, str] = {}
    for index, field in enumerate(fields):
        if control_kind(field) == "file":
            continue
        key = data_key(field, index)
        error = validate_field_value(field, values.get(key))
        if error:
            errors[key] = error
    return errors


def rules_wire() -> Dict[str, Dict[str, Any]]:
    return {name: rule.to_wire() for name, rule in RULES.items()}

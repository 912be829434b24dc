"""Map a stored signup submission back onto the current form schema for display.

Submitted data is keyed by whatever labels the form had when the shopper filled
it in; the schema may have been edited since. Nothing in this module raises on
odd input: an unknown key stays unmatched and an unresolvable value is shown as
submitted.
"""

import logging
import re
from typing import Any, List, Mapping, Optional, Sequence

from signup_widget.geography import GeographyTable
from signup_widget.models import DisplayRow, FormField, SubmittedRequest

logger = logging.getLogger(__name__)

ROLE_HINTS = {
    "first_name": re.compile(r"first[\s_-]?name", re.I),
    "last_name": re.compile(r"last[\s_-]?name", re.I),
    "email": re.compile(r"email", re.I),
    "country": re.compile(r"country", re.I),
    "state": re.compile(r"state|province", re.I),
}

PRIORITY_ROLES = ("first_name", "last_name", "email")
CHECKED_VALUES = frozenset({"true", "on", "yes", "1"})
SENSITIVE_KEY = re.compile(r"password", re.I)

UNMATCHED_ORDER = 999
SCHEMA_ORDER_OFFSET = 100


def normalize_key(value: Any) -> str:
    return re.sub(r"[^a-z0-9]", "", str(value or "").lower())


def humanize_key(key: str) -> str:
    """``company_size`` -> ``company size``, ``jobTitle`` -> ``job Title``."""
    spaced = re.sub(r"([A-Z])", r" \1", str(key).replace("_", " "))
    return " ".join(spaced.split())


def _display(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def prioritized(fields: Sequence[FormField]) -> List[FormField]:
    ordered: List[FormField] = []
    for role in PRIORITY_ROLES:
        ordered.extend(field for field in fields if field.role == role)
    ordered.extend(field for field in fields if field.role not in PRIORITY_ROLES)
    return ordered


def _field_matches(raw_key: str, field: FormField) -> bool:
    label = field.label or ""
    if label and label.strip().lower() == raw_key.strip().lower():
        return True

    key_norm = normalize_key(raw_key)
    label_norm = normalize_key(label)
    if label_norm and key_norm:
        if key_norm == label_norm or label_norm in key_norm or key_norm in label_norm:
            return True

    hint = ROLE_HINTS.get(field.role or "")
    return bool(hint and hint.search(raw_key))


def match_field(raw_key: Any, fields: Sequence[FormField]) -> Optional[FormField]:
    """First field, in priority order, whose label or role explains ``raw_key``."""
    key = _display(raw_key)
    if not key.strip():
        return None
    for field in prioritized(fields):
        if _field_matches(key, field):
            return field
    return None


def _sibling_country_code(
    geography: GeographyTable,
    sibling_data: Mapping[str, Any],
    schema_fields: Optional[Sequence[FormField]],
) -> Optional[str]:
    """Country chosen alongside a state value, found through the schema when there is one."""
    for key, value in sibling_data.items():
        if schema_fields is None:
            if not ROLE_HINTS["country"].search(str(key)):
                continue
        else:
            matched = match_field(key, schema_fields)
            if matched is None or matched.role != "country":
                continue
        raw = _display(value).strip()
        entry = geography.find_country(raw) or geography.find_country_by_name(raw)
        if entry is not None:
            return entry.country_short_code
    return None


def _resolve_option(field: FormField, raw: str) -> Optional[str]:
    needle = raw.strip().lower()
    for option in field.options:
        if option.value.strip().lower() == needle:
            return option.label
    for option in field.options:
        if option.label.strip().lower() == needle:
            return option.label
    return None


def _resolve_scalar(
    field: FormField,
    raw_value: Any,
    geography: GeographyTable,
    sibling_data: Mapping[str, Any],
    schema_fields: Optional[Sequence[FormField]],
) -> str:
    raw = _display(raw_value)

    if field.role == "country":
        return geography.country_name(raw.strip()) or raw

    if field.role == "state":
        code = _sibling_country_code(geography, sibling_data, schema_fields)
        if code is not None:
            region = geography.find_region(code, raw)
        else:
            region = geography.find_region_anywhere(raw)
        return region.name if region is not None else raw

    if field.type in ("select", "radio", "checkbox") and field.options:
        label = _resolve_option(field, raw)
        if label is not None:
            return label

    if field.type == "checkbox" and raw.strip().lower() in CHECKED_VALUES:
        if field.options:
            return field.options[0].label
        return field.label or raw

    return raw


def resolve_value(
    field: FormField,
    raw_value: Any,
    geography: GeographyTable,
    sibling_data: Optional[Mapping[str, Any]] = None,
    schema_fields: Optional[Sequence[FormField]] = None,
) -> str:
    """Display label for a submitted value; the value itself when nothing resolves it."""
    siblings = sibling_data or {}
    if isinstance(raw_value, (list, tuple)):
        return ", ".join(
            _resolve_scalar(field, item, geography, siblings, schema_fields) for item in raw_value
        )
    return _resolve_scalar(field, raw_value, geography, siblings, schema_fields)


def _sort_order(raw_key: str, field: Optional[FormField], fields: Sequence[FormField]) -> int:
    if ROLE_HINTS["first_name"].search(raw_key) or (field is not None and field.role == "first_name"):
        return 0
    if ROLE_HINTS["last_name"].search(raw_key) or (field is not None and field.role == "last_name"):
        return 1
    if raw_key.strip().lower() == "email" or (field is not None and field.role == "email"):
        return 2
    if field is not None:
        for index, candidate in enumerate(fields):
            if candidate is field:
                return index + SCHEMA_ORDER_OFFSET
    return UNMATCHED_ORDER


def _is_sensitive(raw_key: str, field: Optional[FormField]) -> bool:
    if SENSITIVE_KEY.search(raw_key):
        return True
    return field is not None and field.role == "password"


def _basename(value: str) -> str:
    return value.rstrip("/").rsplit("/", 1)[-1] or value


def reconcile_submission(
    request: Any,
    fields: Sequence[FormField],
    geography: GeographyTable,
    include_sensitive: bool = False,
) -> List[DisplayRow]:
    """Ordered display rows for every submitted key and uploaded file."""
    if not isinstance(request, SubmittedRequest):
        request = SubmittedRequest.model_validate(request if isinstance(request, dict) else {})

    rows: List[DisplayRow] = []
    for raw_key, raw_value in request.data.items():
        field = match_field(raw_key, fields)
        if not include_sensitive and _is_sensitive(raw_key, field):
            continue
        if field is not None and field.label.strip():
            label = field.label
            display = resolve_value(field, raw_value, geography, request.data, fields)
        else:
            label = humanize_key(raw_key)
            display = (
                ", ".join(_display(item) for item in raw_value)
                if isinstance(raw_value, (list, tuple))
                else _display(raw_value)
            )
        rows.append(
            DisplayRow(
                label=label or raw_key,
                raw_key=raw_key,
                raw_value=raw_value,
                display_value=display,
                field_id=field.id if field is not None else None,
                is_file=field is not None and field.type == "file",
                sort_order=_sort_order(raw_key, field, fields),
            )
        )

    for upload in request.files:
        field = match_field(upload.name, fields)
        rows.append(
            DisplayRow(
                label=(field.label if field is not None and field.label.strip() else humanize_key(upload.name)),
                raw_key=upload.name,
                raw_value=upload.url,
                display_value=_basename(upload.url) if upload.url else upload.name,
                field_id=field.id if field is not None else None,
                is_file=True,
                sort_order=_sort_order(upload.name, field, fields),
            )
        )

    rows.sort(key=lambda row: row.sort_order)
    logger.debug(
        "Reconciled request %s: %d rows (%d unmatched)",
        request.id or "-",
        len(rows),
        sum(1 for row in rows if row.field_id is None),
    )
    return rows

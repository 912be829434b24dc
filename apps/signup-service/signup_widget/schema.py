"""Schema-level helpers shared by the compiler, the preview renderer and the HTTP layer.

Everything here is lenient: partial input is coerced and defaulted. Only
``validate_form_schema`` is strict, and it reports issues instead of raising.
"""

import logging
import os
from typing import Any, Dict, Iterable, List, Optional, Sequence
from urllib.parse import urlparse

from pydantic import BaseModel, Field

from signup_widget.models import FormField, FormSchema, SchemaIssue, Theme

logger = logging.getLogger(__name__)

DEFAULT_CONTAINER_ID = os.getenv("DEFAULT_CONTAINER_ID", "custom-signup-container")

MAX_FIELDS = 100
MAX_LABEL = 50
MAX_CHECKBOX_LABEL = 250
MAX_PLACEHOLDER = 50
MAX_OPTION_LABEL = 200
MAX_OPTION_VALUE = 200

CORE_FIELDS = (
    {"role": "first_name", "label": "First Name", "type": "text", "placeholder": "Enter first name"},
    {"role": "last_name", "label": "Last Name", "type": "text", "placeholder": "Enter last name"},
    {"role": "email", "label": "Email", "type": "email", "placeholder": "Enter your email"},
    {"role": "password", "label": "Password", "type": "text", "placeholder": "Create a password"},
)


class SchemaValidationError(ValueError):
    def __init__(self, issues: Sequence[SchemaIssue]):
        self.issues = list(issues)
        summary = "; ".join(f"{issue.path}: {issue.message}" for issue in self.issues)
        super().__init__(summary or "Invalid form schema")


class ResolvedTheme(BaseModel):
    """Theme with every documented default applied; what the widget actually renders."""

    title: str
    subtitle: str
    title_color: str
    title_font_size: str
    title_font_weight: str
    subtitle_color: str
    subtitle_font_size: str
    subtitle_font_weight: str
    primary_color: str
    layout: str
    split_image_url: str
    button_text: str
    button_bg: str
    button_color: str
    button_radius: str
    form_background_color: str
    page_background_color: str


class FieldGroup(BaseModel):
    fields: List[FormField] = Field(default_factory=list)
    positions: List[int] = Field(default_factory=list)
    row_group: Optional[int] = None

    @property
    def is_paired(self) -> bool:
        return self.row_group is not None and len(self.fields) == 2


def _fmt_number(value: Optional[float], default: int) -> str:
    if value is None:
        return str(default)
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def coerce_fields(raw_fields: Iterable[Any]) -> List[FormField]:
    fields: List[FormField] = []
    for index, item in enumerate(raw_fields):
        if isinstance(item, FormField):
            fields.append(item)
        elif isinstance(item, dict):
            fields.append(FormField.model_validate(item))
        else:
            logger.warning("Skipping field #%d: expected an object, got %s", index + 1, type(item).__name__)
    return fields


def coerce_theme(raw_theme: Any) -> Theme:
    if isinstance(raw_theme, Theme):
        return raw_theme
    if isinstance(raw_theme, dict):
        return Theme.model_validate(raw_theme)
    return Theme()


def normalize_theme(theme: Theme) -> Theme:
    """Split layout without a usable image degrades to center."""
    if theme.layout == "split" and not (theme.split_image_url or "").strip():
        return theme.model_copy(update={"layout": "center"})
    return theme


def resolve_theme(theme: Theme) -> ResolvedTheme:
    theme = normalize_theme(theme)
    primary = theme.primary_color or "#2563eb"
    return ResolvedTheme(
        title=theme.title or "Create your account",
        subtitle=theme.subtitle or "Please fill in the form to continue",
        title_color=theme.title_color or primary,
        title_font_size=_fmt_number(theme.title_font_size, 22),
        title_font_weight=theme.title_font_weight or "800",
        subtitle_color=theme.subtitle_color or primary,
        subtitle_font_size=_fmt_number(theme.subtitle_font_size, 13),
        subtitle_font_weight=theme.subtitle_font_weight or "400",
        primary_color=primary,
        layout=theme.layout or "center",
        split_image_url=(theme.split_image_url or "").strip(),
        button_text=theme.button_text or "Create account",
        button_bg=theme.button_bg or primary,
        button_color=theme.button_color or "#fff",
        button_radius=_fmt_number(theme.button_radius, 10),
        form_background_color=theme.form_background_color or "#ffffff",
        page_background_color=theme.page_background_color or "#f9fafb",
    )


def group_fields(fields: Sequence[FormField]) -> List[FieldGroup]:
    """Walk fields in order; a rowGroup pulls in every later unconsumed field sharing it."""
    groups: List[FieldGroup] = []
    consumed: set[int] = set()

    for index, field in enumerate(fields):
        if index in consumed:
            continue
        if field.row_group is None:
            consumed.add(index)
            groups.append(FieldGroup(fields=[field], positions=[index]))
            continue
        members: List[FormField] = []
        positions: List[int] = []
        for other_index in range(index, len(fields)):
            if other_index in consumed:
                continue
            if fields[other_index].row_group == field.row_group:
                members.append(fields[other_index])
                positions.append(other_index)
                consumed.add(other_index)
        groups.append(FieldGroup(fields=members, positions=positions, row_group=field.row_group))

    return groups


def ensure_core_fields(fields: Sequence[FormField]) -> List[FormField]:
    """Put the locked first name, last name, email and password fields first."""

    def matches(field: FormField, core: Dict[str, str]) -> bool:
        return field.role == core["role"] or field.label.strip().lower() == core["label"].lower()

    next_id = max((field.id for field in fields if field.id is not None), default=0) + 1
    core_fields: List[FormField] = []
    claimed: set[int] = set()

    for core in CORE_FIELDS:
        existing_index = next(
            (i for i, field in enumerate(fields) if i not in claimed and matches(field, core)),
            None,
        )
        if existing_index is not None:
            claimed.add(existing_index)
            existing = fields[existing_index]
            core_fields.append(
                existing.model_copy(
                    update={
                        "required": True,
                        "locked": True,
                        "role": core["role"],
                        "type": core["type"],
                        "placeholder": existing.placeholder or core["placeholder"],
                    }
                )
            )
            continue
        core_fields.append(
            FormField(
                id=next_id,
                type=core["type"],
                label=core["label"],
                placeholder=core["placeholder"],
                required=True,
                label_color="#1f2937",
                label_size="14",
                label_weight="600",
                border_color="#d1d5db",
                border_width="1",
                border_radius="6",
                bg_color="#ffffff",
                padding="10",
                font_size="14",
                text_color="#1f2937",
                role=core["role"],
                locked=True,
            )
        )
        next_id += 1

    rest = [field for i, field in enumerate(fields) if i not in claimed]
    return core_fields + rest


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_form_schema(schema: FormSchema) -> List[SchemaIssue]:
    issues: List[SchemaIssue] = []

    def issue(path: str, message: str) -> None:
        issues.append(SchemaIssue(path=path, message=message))

    if len(schema.fields) > MAX_FIELDS:
        issue("fields", f"A form can have at most {MAX_FIELDS} fields")

    seen_ids: Dict[int, int] = {}
    role_owner: Dict[str, int] = {}

    for index, field in enumerate(schema.fields):
        path = f"fields[{index}]"
        if field.id is not None:
            if field.id in seen_ids:
                issue(f"{path}.id", f"Duplicate field id {field.id} (also used by fields[{seen_ids[field.id]}])")
            else:
                seen_ids[field.id] = index

        if field.type == "checkbox":
            if len(field.label) > MAX_CHECKBOX_LABEL:
                issue(f"{path}.label", f"Checkbox label must be {MAX_CHECKBOX_LABEL} characters or less")
            if not field.label and not field.options:
                issue(f"{path}.options", "Checkbox fields without a label must have at least one option")
            option_limit = MAX_CHECKBOX_LABEL
        else:
            if not field.label:
                issue(f"{path}.label", "Label must have at least 1 character")
            elif len(field.label) > MAX_LABEL:
                issue(f"{path}.label", f"Label must be {MAX_LABEL} characters or less")
            if len(field.placeholder) > MAX_PLACEHOLDER:
                issue(f"{path}.placeholder", f"Placeholder must be {MAX_PLACEHOLDER} characters or less")
            option_limit = MAX_OPTION_LABEL

        for option_index, option in enumerate(field.options):
            if len(option.label) > option_limit:
                issue(f"{path}.options[{option_index}].label", f"Option label must be {option_limit} characters or less")
            if len(option.value) > MAX_OPTION_VALUE:
                issue(f"{path}.options[{option_index}].value", f"Option value must be {MAX_OPTION_VALUE} characters or less")

        if field.role:
            if field.role in role_owner:
                issue(
                    f"{path}.role",
                    f"Role '{field.role}' is already used by fields[{role_owner[field.role]}]",
                )
            else:
                role_owner[field.role] = index

    theme = schema.theme
    if theme.title is not None and len(theme.title) > 200:
        issue("theme.title", "Title must be 200 characters or less")
    if theme.subtitle is not None and len(theme.subtitle) > 500:
        issue("theme.subtitle", "Subtitle must be 500 characters or less")
    if theme.button_text is not None and len(theme.button_text) > 100:
        issue("theme.buttonText", "Button text must be 100 characters or less")
    if theme.title_font_size is not None and not 10 <= theme.title_font_size <= 100:
        issue("theme.titleFontSize", "Title font size must be between 10 and 100")
    if theme.subtitle_font_size is not None and not 8 <= theme.subtitle_font_size <= 50:
        issue("theme.subtitleFontSize", "Subtitle font size must be between 8 and 50")
    if theme.button_radius is not None and not 0 <= theme.button_radius <= 50:
        issue("theme.buttonRadius", "Button radius must be between 0 and 50")
    image_url = (theme.split_image_url or "").strip()
    if image_url and not _is_http_url(image_url):
        issue("theme.splitImageUrl", "Invalid URL")

    return issues


def ensure_valid_schema(schema: FormSchema) -> FormSchema:
    issues = validate_form_schema(schema)
    if issues:
        raise SchemaValidationError(issues)
    return schema

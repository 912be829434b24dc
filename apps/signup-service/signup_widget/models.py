import logging
from typing import Any, Dict, List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

FieldType = Literal[
    "text", "email", "phone", "number", "textarea", "select", "radio", "checkbox", "date", "file", "url"
]
FieldRole = Literal["first_name", "last_name", "email", "password", "country", "state"]
Layout = Literal["split", "center"]

FIELD_TYPES = frozenset(get_args(FieldType))
FIELD_ROLES = frozenset(get_args(FieldRole))

OPTION_TYPES = frozenset({"select", "radio", "checkbox"})


class CamelModel(BaseModel):
    """Base for shapes exchanged with the builder UI and the widget (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class FieldOption(CamelModel):
    label: str = ""
    value: str = ""

    @model_validator(mode="before")
    @classmethod
    def _default_value_to_label(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"label": data, "value": data}
        if isinstance(data, dict):
            data = dict(data)
            label = _as_text(data.get("label")) or ""
            value = _as_text(data.get("value"))
            data["label"] = label
            data["value"] = value if value not in (None, "") else label
        return data


class FormField(CamelModel):
    id: Optional[int] = None
    type: FieldType = "text"
    label: str = ""
    placeholder: str = ""
    required: bool = False
    label_color: Optional[str] = None
    label_size: Optional[str] = None
    label_weight: Optional[str] = None
    border_color: Optional[str] = None
    border_width: Optional[str] = None
    border_radius: Optional[str] = None
    bg_color: Optional[str] = None
    padding: Optional[str] = None
    font_size: Optional[str] = None
    text_color: Optional[str] = None
    role: Optional[FieldRole] = None
    locked: bool = False
    options: List[FieldOption] = Field(default_factory=list)
    row_group: Optional[int] = None

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> str:
        text = str(value or "").strip().lower()
        if text in FIELD_TYPES:
            return text
        if text:
            logger.warning("Unknown field type %r; rendering as text", value)
        return "text"

    @field_validator("role", mode="before")
    @classmethod
    def _coerce_role(cls, value: Any) -> Optional[str]:
        text = str(value or "").strip().lower()
        return text if text in FIELD_ROLES else None

    @field_validator("label", "placeholder", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> str:
        return _as_text(value) or ""

    @field_validator(
        "label_color",
        "label_size",
        "label_weight",
        "border_color",
        "border_width",
        "border_radius",
        "bg_color",
        "padding",
        "font_size",
        "text_color",
        mode="before",
    )
    @classmethod
    def _coerce_style(cls, value: Any) -> Optional[str]:
        text = _as_text(value)
        return text if text not in (None, "") else None

    @field_validator("required", "locked", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in {"true", "1", "yes", "on"}
        return bool(value)

    @field_validator("id", "row_group", mode="before")
    @classmethod
    def _coerce_int(cls, value: Any) -> Optional[int]:
        if value is None or isinstance(value, bool):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    @field_validator("options", mode="before")
    @classmethod
    def _coerce_options(cls, value: Any) -> List[Any]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, (dict, str))]


class Theme(CamelModel):
    title: Optional[str] = None
    subtitle: Optional[str] = None
    title_color: Optional[str] = None
    title_font_size: Optional[float] = None
    title_font_weight: Optional[str] = None
    subtitle_color: Optional[str] = None
    subtitle_font_size: Optional[float] = None
    subtitle_font_weight: Optional[str] = None
    primary_color: Optional[str] = None
    layout: Optional[Layout] = None
    split_image_url: Optional[str] = None
    button_text: Optional[str] = None
    button_bg: Optional[str] = None
    button_color: Optional[str] = None
    button_radius: Optional[float] = None
    form_background_color: Optional[str] = None
    page_background_color: Optional[str] = None

    @field_validator("layout", mode="before")
    @classmethod
    def _coerce_layout(cls, value: Any) -> Optional[str]:
        text = str(value or "").strip().lower()
        return text if text in ("split", "center") else None

    @field_validator("title_font_size", "subtitle_font_size", "button_radius", mode="before")
    @classmethod
    def _coerce_number(cls, value: Any) -> Optional[float]:
        if value is None or value == "" or isinstance(value, bool):
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    @field_validator(
        "title",
        "subtitle",
        "title_color",
        "title_font_weight",
        "subtitle_color",
        "subtitle_font_weight",
        "primary_color",
        "split_image_url",
        "button_text",
        "button_bg",
        "button_color",
        "form_background_color",
        "page_background_color",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        return _as_text(value)


class FormSchema(CamelModel):
    fields: List[FormField] = Field(default_factory=list)
    theme: Theme = Field(default_factory=Theme)
    container_id: Optional[str] = None

    @field_validator("theme", mode="before")
    @classmethod
    def _coerce_theme(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, Theme)) else {}

    @field_validator("container_id", mode="before")
    @classmethod
    def _coerce_container_id(cls, value: Any) -> Optional[str]:
        if isinstance(value, (dict, list)):
            return None
        return (_as_text(value) or "").strip() or None


class Region(CamelModel):
    name: str
    short_code: Optional[str] = None

    @property
    def option_value(self) -> str:
        return self.short_code or self.name


class GeographyEntry(CamelModel):
    country_name: str
    country_short_code: str
    regions: List[Region] = Field(default_factory=list)


class SubmittedFile(CamelModel):
    name: str = ""
    url: str = ""
    content_type: Optional[str] = None
    size: Optional[int] = None

    @field_validator("name", "url", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> str:
        return _as_text(value) or ""

    @field_validator("size", mode="before")
    @classmethod
    def _coerce_size(cls, value: Any) -> Optional[int]:
        try:
            return int(value) if value is not None else None
        except (TypeError, ValueError):
            return None


class SubmittedRequest(CamelModel):
    id: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    email: Optional[str] = None
    files: List[SubmittedFile] = Field(default_factory=list)

    @field_validator("id", "email", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Optional[str]:
        return None if isinstance(value, (dict, list)) else _as_text(value)

    @field_validator("files", mode="before")
    @classmethod
    def _coerce_files(cls, value: Any) -> List[Any]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    @field_validator("data", mode="before")
    @classmethod
    def _coerce_data(cls, value: Any) -> Dict[str, Any]:
        if not isinstance(value, dict):
            return {}
        return {str(key): item for key, item in value.items()}


class DisplayRow(CamelModel):
    label: str
    raw_key: str
    raw_value: Any = None
    display_value: str = ""
    field_id: Optional[int] = None
    is_file: bool = False
    sort_order: int = 999


class Address(BaseModel):
    first_name: str
    last_name: str
    address1: str
    city: str
    country_code: str
    address2: Optional[str] = None
    state_or_province: Optional[str] = None
    postal_code: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    address_type: str = "residential"


class CustomerDraft(BaseModel):
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    company: Optional[str] = None
    password: Optional[str] = Field(default=None, repr=False)
    addresses: List[Address] = Field(default_factory=list)


class SchemaIssue(BaseModel):
    path: str
    message: str

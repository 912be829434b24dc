"""Compile a form schema into a self-contained storefront signup widget.

``compile_widget`` is a pure function: the same fields, container id, theme and
geography snapshot always produce byte-identical script text. Partial schemas
are defaulted rather than rejected; only a non-list ``fields`` is an error.
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional, Sequence

from signup_widget import field_kinds
from signup_widget.geography import GeographyTable, fallback_table
from signup_widget.models import FormField, Theme
from signup_widget.runtime_js import CONFIG_MARKER, RUNTIME_TEMPLATE
from signup_widget.schema import (
    DEFAULT_CONTAINER_ID,
    FieldGroup,
    coerce_fields,
    coerce_theme,
    group_fields,
    resolve_theme,
)
from signup_widget.styles import base_css, frame_css

logger = logging.getLogger(__name__)

WIDGET_SCRIPT_NAME = os.getenv("WIDGET_SCRIPT_NAME", "custom-signup.min.js")
SUBMISSION_PATH = "/api/public/signup-requests"

# Storefront account-creation page: /login.php?action=create_account
LOGIN_PATH_PATTERN = r"/login\.php$"
CREATE_ACCOUNT_QUERY_PATTERN = r"(^|[?&])action=create_account(&|$)"

MESSAGES = {
    "countryPlaceholder": field_kinds.COUNTRY_PLACEHOLDER,
    "statePlaceholder": field_kinds.STATE_SELECT_PLACEHOLDER,
    "stateNeedsCountry": field_kinds.STATE_NEEDS_COUNTRY,
    "stateFreeText": field_kinds.STATE_FREE_TEXT,
    "optionPlaceholder": field_kinds.OPTION_PLACEHOLDER,
    "required": field_kinds.REQUIRED_MESSAGE,
    "busy": "Submitting…",
    "success": "Thanks! Your request has been submitted for review.",
    "duplicate": "You have already submitted a request. Please wait for approval or contact the store admin.",
    "failure": "Submission failed. Please try again.",
}


class WidgetCompileError(TypeError):
    pass


def _group_plans(groups: Sequence[FieldGroup], needs_country: bool) -> List[Dict[str, Any]]:
    return [
        {
            "paired": group.is_paired,
            "fields": [
                field_kinds.field_plan(field, position, needs_country)
                for field, position in zip(group.fields, group.positions)
            ],
        }
        for group in groups
    ]


def build_widget_config(
    fields: Sequence[FormField],
    container_id: str,
    theme: Theme,
    geography: GeographyTable,
) -> Dict[str, Any]:
    resolved = resolve_theme(theme)
    return {
        "containerId": container_id,
        "scriptName": WIDGET_SCRIPT_NAME,
        "endpoint": SUBMISSION_PATH,
        "gate": {"path": LOGIN_PATH_PATTERN, "query": CREATE_ACCOUNT_QUERY_PATTERN},
        "theme": {
            "title": resolved.title,
            "subtitle": resolved.subtitle,
            "layout": resolved.layout,
            "splitImageUrl": resolved.split_image_url,
            "buttonText": resolved.button_text,
        },
        "baseCss": base_css(resolved),
        "css": frame_css(resolved),
        "groups": _group_plans(group_fields(fields), field_kinds.has_country_field(fields)),
        "geography": geography.to_wire(),
        "rules": field_kinds.rules_wire(),
        "text": MESSAGES,
    }


def _embed(config: Dict[str, Any]) -> str:
    payload = json.dumps(config, ensure_ascii=True, separators=(",", ":"))
    # Keep the payload inert if the script is ever inlined into an HTML page.
    return payload.replace("</", "<\\/").replace("<!--", "<\\u0021--")


def compile_widget(
    fields: Any,
    container_id: Optional[str] = None,
    theme: Any = None,
    geography: Optional[GeographyTable] = None,
) -> str:
    """Return the widget script for ``fields``; ``geography`` defaults to the embedded table."""
    if not isinstance(fields, list):
        raise WidgetCompileError(f"fields must be a list, got {type(fields).__name__}")

    coerced = coerce_fields(fields)
    table = geography if geography is not None else fallback_table()
    config = build_widget_config(
        coerced,
        container_id or DEFAULT_CONTAINER_ID,
        coerce_theme(theme),
        table,
    )
    script = RUNTIME_TEMPLATE.replace(CONFIG_MARKER, _embed(config), 1)

    logger.info(
        "Compiled signup widget with %d fields in %d groups (%d countries, %d bytes)",
        len(coerced),
        len(config["groups"]),
        len(table),
        len(script),
    )
    return script

import html
import logging
from typing import Any, List, Sequence

from signup_widget import field_kinds
from signup_widget.geography import GeographyTable
from signup_widget.models import FormField
from signup_widget.schema import coerce_fields, coerce_theme, group_fields, resolve_theme
from signup_widget.styles import base_css, frame_css

logger = logging.getLogger(__name__)


def _attr(value: Any) -> str:
    return html.escape(str(value), quote=True)


def _option(value: str, text: str, selected: bool = False) -> str:
    marker = " selected" if selected else ""
    return f'<option value="{_attr(value)}"{marker}>{html.escape(text)}</option>'


def _common_attrs(field: FormField, index: int) -> str:
    return (
        f' name="{_attr(field_kinds.data_key(field, index))}"'
        f' aria-label="{_attr(field.label)}"'
        f' style="{_attr(field_kinds.input_css(field))}"'
    )


def _choices(field: FormField, index: int, input_type: str) -> str:
    role = "radiogroup" if input_type == "radio" else "group"
    rows: List[str] = []
    for option in field.options:
        rows.append(
            '<label class="cs-choice">'
            f'<input type="{input_type}" name="cs-field-{index}" value="{_attr(option.value)}" />'
            f"<span>{html.escape(option.label)}</span></label>"
        )
    return f'<div role="{role}" aria-label="{_attr(field.label)}">{"".join(rows)}</div>'


def _state_control(
    field: FormField,
    index: int,
    geography: GeographyTable,
    selected_country: str,
    needs_country: bool,
) -> str:
    attrs = _common_attrs(field, index)
    regions = geography.regions_for(selected_country) if selected_country else []
    mode = field_kinds.state_control_mode(bool(regions), bool(selected_country), needs_country)
    if mode == "select":
        options = [_option("", field_kinds.STATE_SELECT_PLACEHOLDER)]
        options.extend(_option(region.option_value, region.name) for region in regions)
        return f"<select{attrs}>{''.join(options)}</select>"
    if mode == "locked":
        return f'<input type="text" placeholder="{_attr(field_kinds.STATE_NEEDS_COUNTRY)}" disabled{attrs} />'
    return f'<input type="text" placeholder="{_attr(field_kinds.STATE_FREE_TEXT)}"{attrs} />'


def render_control(
    field: FormField,
    index: int,
    geography: GeographyTable,
    selected_country: str = "",
    needs_country: bool = False,
) -> str:
    kind = field_kinds.control_kind(field)
    attrs = _common_attrs(field, index)
    placeholder = f' placeholder="{_attr(field.placeholder)}"'

    if kind == "country_select":
        options = [_option("", field_kinds.COUNTRY_PLACEHOLDER)]
        options.extend(
            _option(entry.country_short_code, entry.country_name, entry.country_short_code == selected_country)
            for entry in geography
        )
        return f"<select{attrs}>{''.join(options)}</select>"
    if kind == "state_control":
        return _state_control(field, index, geography, selected_country, needs_country)
    if kind == "textarea":
        return f'<textarea rows="3"{placeholder}{attrs}></textarea>'
    if kind == "select":
        options = [_option("", field_kinds.OPTION_PLACEHOLDER)]
        options.extend(_option(option.value, option.label) for option in field.options)
        return f"<select{attrs}>{''.join(options)}</select>"
    if kind == "radio":
        return _choices(field, index, "radio")
    if kind == "checkbox_group":
        return _choices(field, index, "checkbox")
    if kind == "checkbox":
        return (
            f'<input type="checkbox" name="{_attr(field_kinds.data_key(field, index))}"'
            f' aria-label="{_attr(field.label)}" />'
        )
    if kind == "file":
        return f'<input type="file"{attrs} />'
    return f'<input type="{_attr(field_kinds.input_subtype(field))}"{placeholder}{attrs} />'


def _render_field(
    field: FormField,
    index: int,
    geography: GeographyTable,
    selected_country: str,
    needs_country: bool,
    error_css: str,
) -> str:
    label = (
        f'<label style="{_attr(field_kinds.label_css(field))}">'
        f"{html.escape(field_kinds.label_text(field))}</label>"
    )
    control = render_control(field, index, geography, selected_country, needs_country)
    error = f'<div class="cs-error" style="{_attr(error_css)}"></div>'
    return f'<div data-field-index="{index}">{label}{control}{error}</div>'


def render_preview_html(
    fields: Sequence[Any],
    theme: Any,
    geography: GeographyTable,
    view_mode: str = "desktop",
    selected_country: str = "",
) -> str:
    """Render the static DOM the compiled widget builds, for the builder's live preview."""
    coerced = coerce_fields(fields)
    resolved = resolve_theme(coerce_theme(theme))
    css = frame_css(resolved)
    country = (selected_country or "").strip().upper()
    stacked = view_mode == "mobile"
    needs_country = field_kinds.has_country_field(coerced)

    body_parts: List[str] = []
    for group in group_fields(coerced):
        rendered = [
            _render_field(field, position, geography, country, needs_country, css["error"])
            for field, position in zip(group.fields, group.positions)
        ]
        if group.is_paired and not stacked:
            body_parts.append(f'<div class="cs-row-group">{"".join(rendered)}</div>')
        else:
            body_parts.extend(rendered)

    body_parts.append(f'<div class="cs-form-error" role="alert" style="{_attr(css["error"])}"></div>')
    if coerced:
        body_parts.append(
            f'<button type="submit" style="{_attr(css["button"])}">{html.escape(resolved.button_text)}</button>'
        )

    card = (
        f'<div style="{_attr(css["card"])}">'
        f'<h1 style="{_attr(css["title"])}">{html.escape(resolved.title)}</h1>'
        f'<p style="{_attr(css["subtitle"])}">{html.escape(resolved.subtitle)}</p>'
        f'<form novalidate style="{_attr(css["form"])}">{"".join(body_parts)}</form>'
        "</div>"
    )

    aside = ""
    if resolved.layout == "split":
        accent = css["overlay"] if resolved.split_image_url else css["orb"]
        aside = f'<div style="{_attr(css["aside"])}"><div style="{_attr(accent)}"></div></div>'

    page = (
        f'<div style="{_attr(css["page"])}">{aside}'
        f'<div id="{_attr("preview-" + view_mode)}" style="{_attr(css["root"])}">{card}</div>'
        "</div>"
    )

    logger.info(
        "Rendered %s preview with %d fields (layout=%s, country=%s)",
        view_mode,
        len(coerced),
        resolved.layout,
        country or "-",
    )

    return (
        "<!DOCTYPE html><html><head>"
        f"<style>{base_css(resolved)}</style>"
        f'</head><body style="{_attr(css["body"])}">'
        f"{page}"
        "</body></html>"
    )

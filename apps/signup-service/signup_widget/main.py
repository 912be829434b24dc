import asyncio
import logging
import os
from typing import Any, Dict, List

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from pydantic import ValidationError

from signup_widget.compiler import WIDGET_SCRIPT_NAME, WidgetCompileError, compile_widget
from signup_widget.extraction import CustomerExtractionError, build_customer_draft
from signup_widget.field_kinds import validate_values
from signup_widget.geography import get_geography_table, reset_geography_cache
from signup_widget.matching import reconcile_submission
from signup_widget.models import FormSchema, SubmittedRequest
from signup_widget.preview import render_preview_html
from signup_widget.schema import (
    SchemaValidationError,
    coerce_fields,
    ensure_core_fields,
    ensure_valid_schema,
    validate_form_schema,
)

load_dotenv()

app = FastAPI(title="Storefront Signup Service")
logger = logging.getLogger(__name__)

VIEW_MODES = ("desktop", "mobile")


def _dev_routes_enabled() -> bool:
    return os.getenv("ENABLE_DEV_ROUTES", "false").lower() == "true"


def _form_fields(payload: Dict[str, Any], key: str = "formFields") -> List[Any]:
    raw = payload.get(key) if isinstance(payload, dict) else None
    if not isinstance(raw, list):
        raise HTTPException(status_code=400, detail=f"Invalid {key}")
    return raw


def _schema_from(payload: Dict[str, Any], fields_key: str) -> FormSchema:
    body: Dict[str, Any] = {
        "fields": [item for item in _form_fields(payload, fields_key) if isinstance(item, dict)],
        "theme": payload.get("theme"),
        "containerId": payload.get("containerId"),
    }
    try:
        schema = FormSchema.model_validate(body)
    except ValidationError as exc:
        logger.warning("Unusable form schema: %s", exc)
        raise HTTPException(status_code=422, detail="Invalid form schema") from exc

    if payload.get("ensureCoreFields"):
        schema = schema.model_copy(update={"fields": ensure_core_fields(schema.fields)})
    return schema


@app.get("/health")
async def health():
    return {"ok": True, "service": "signup-service"}


@app.post("/generate-signup-script")
async def generate_signup_script(payload: Dict[str, Any]):
    raw_fields = _form_fields(payload)
    schema = _schema_from(payload, "formFields")
    fields: List[Any] = schema.fields if payload.get("ensureCoreFields") else raw_fields

    if payload.get("strict"):
        try:
            ensure_valid_schema(schema)
        except SchemaValidationError as exc:
            logger.warning("Rejected form schema with %d issues", len(exc.issues))
            raise HTTPException(
                status_code=422,
                detail=[issue.model_dump() for issue in exc.issues],
            ) from exc

    geography = await asyncio.to_thread(get_geography_table)
    try:
        content = compile_widget(
            fields,
            container_id=schema.container_id,
            theme=payload.get("theme"),
            geography=geography,
        )
    except WidgetCompileError as exc:
        logger.exception("Widget compilation failed")
        raise HTTPException(status_code=400, detail="Invalid formFields") from exc

    warnings = [f"{issue.path}: {issue.message}" for issue in validate_form_schema(schema)]
    if warnings:
        logger.info("Compiled widget with %d schema warnings", len(warnings))

    return {"ok": True, "path": f"/{WIDGET_SCRIPT_NAME}", "content": content, "warnings": warnings}


@app.post("/preview")
async def preview(payload: Dict[str, Any]):
    raw_fields = _form_fields(payload)
    view_mode = str(payload.get("viewMode") or "desktop").lower()
    if view_mode not in VIEW_MODES:
        view_mode = "desktop"

    geography = await asyncio.to_thread(get_geography_table)
    html_content = render_preview_html(
        raw_fields,
        payload.get("theme"),
        geography,
        view_mode=view_mode,
        selected_country=str(payload.get("selectedCountry") or ""),
    )
    return {"html": html_content}


@app.post("/form-schema/validate")
async def validate_schema(payload: Dict[str, Any]):
    schema = _schema_from(payload, "fields")
    issues = validate_form_schema(schema)
    body: Dict[str, Any] = {"ok": not issues, "issues": [issue.model_dump() for issue in issues]}
    if payload.get("ensureCoreFields"):
        body["fields"] = [field.to_wire() for field in schema.fields]
    return body


@app.get("/geography")
async def geography():
    table = await asyncio.to_thread(get_geography_table)
    return {"countries": table.to_wire()}


def _submitted_request(payload: Dict[str, Any]) -> SubmittedRequest:
    raw = payload.get("request") if isinstance(payload, dict) else None
    if not isinstance(raw, dict):
        raise HTTPException(status_code=400, detail="Invalid request")
    return SubmittedRequest.model_validate(raw)


@app.post("/signup-requests/reconcile")
async def reconcile(payload: Dict[str, Any]):
    fields = coerce_fields(_form_fields(payload))
    request = _submitted_request(payload)
    table = await asyncio.to_thread(get_geography_table)
    rows = reconcile_submission(
        request,
        fields,
        table,
        include_sensitive=bool(payload.get("includeSensitive")),
    )
    return {"rows": [row.model_dump(by_alias=True) for row in rows]}


@app.post("/signup-requests/validate")
async def validate_submission(payload: Dict[str, Any]):
    fields = coerce_fields(_form_fields(payload))
    data = payload.get("data")
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail="Invalid data")
    errors = validate_values(fields, data)
    if errors:
        logger.info("Submission failed validation on %d fields", len(errors))
    return {"ok": not errors, "errors": errors}


@app.post("/signup-requests/customer-draft")
async def customer_draft(payload: Dict[str, Any]):
    request = _submitted_request(payload)
    table = await asyncio.to_thread(get_geography_table)
    try:
        draft = build_customer_draft(request, table)
    except CustomerExtractionError as exc:
        logger.warning("Customer draft for request %s failed: %s", request.id or "-", exc)
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    body = draft.model_dump(exclude={"password"}, exclude_none=True)
    body["hasPassword"] = bool(draft.password)
    return body


@app.post("/dev/geography-refresh")
def geography_refresh():
    if not _dev_routes_enabled():
        raise HTTPException(status_code=404, detail="Not found")
    reset_geography_cache()
    table = get_geography_table()
    logger.info("Geography table refreshed with %d countries", len(table))
    return {"ok": True, "countries": len(table)}

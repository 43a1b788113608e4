from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from pydantic import ValidationError

from formbuilder.core.layout_model import new_id
from formbuilder.schemas.layout import (
    ADVANCED_FIELD_TYPES,
    BareFormData,
    CompatibilityReport,
    Complexity,
    FormField,
    FormRow,
    ImportForm,
    SerializableForm,
)

logger = logging.getLogger("formbuilder.serialization")

FORMAT_VERSION = "1.0.0"
DEFAULT_THEME_COLOR = "#6366F1"
DEFAULT_IMPORT_TITLE = "Imported Form"

_ADVANCED_TYPE_VALUES = frozenset(t.value for t in ADVANCED_FIELD_TYPES)
_JSON_CONTENT_TYPES = {"application/json", "text/plain"}
_SNAKE_PART = re.compile(r"_([a-z0-9])")


class FormPipelineError(Exception):
    """Base for export/import failures; carries a list of readable issues."""

    def __init__(self, message: str, issues: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.issues = issues or []

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "issues": self.issues}


class FormSerializationError(FormPipelineError):
    pass


class FormImportError(FormPipelineError):
    pass


class FormFileError(FormPipelineError):
    pass


def _issues_from(exc: ValidationError) -> list[str]:
    out: list[str] = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        out.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return out


def _as_dict(item: Any) -> dict:
    if isinstance(item, (FormField, FormRow)):
        return item.to_json_dict()
    return dict(item)


def classify_complexity(fields: list[dict], rows: list[dict]) -> Complexity:
    field_count = len(fields)
    row_count = len(rows)
    has_advanced = any(f.get("type") in _ADVANCED_TYPE_VALUES for f in fields)
    has_multi_column = any((r.get("columns") or 1) > 1 for r in rows)

    if field_count <= 3 and row_count <= 2 and not has_advanced:
        return "simple"
    if field_count <= 10 and row_count <= 5 and (not has_advanced or not has_multi_column):
        return "moderate"
    return "complex"


def serialize_form(
    title: str,
    description: str | None,
    fields: Iterable[FormField | dict],
    rows: Iterable[FormRow | dict],
    theme_color: str,
    *,
    include_metadata: bool = True,
) -> dict[str, Any]:
    """
    Build the versioned export envelope:
      {"version", "exportedAt", "formData": {title, description?, fields, rows,
       themeColor, metadata: {fieldCount, rowCount, complexity}}}
    """
    field_dicts = [_as_dict(f) for f in fields]
    row_dicts = [_as_dict(r) for r in rows]

    if include_metadata:
        metadata = {
            "fieldCount": len(field_dicts),
            "rowCount": len(row_dicts),
            "complexity": classify_complexity(field_dicts, row_dicts),
        }
    else:
        metadata = {"fieldCount": 0, "rowCount": 0, "complexity": "simple"}

    form_data: dict[str, Any] = {
        "title": title,
        "fields": field_dicts,
        "rows": row_dicts,
        "themeColor": theme_color,
        "metadata": metadata,
    }
    if description:
        form_data["description"] = description

    envelope = {
        "version": FORMAT_VERSION,
        "exportedAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "formData": form_data,
    }

    try:
        SerializableForm.model_validate(envelope)
    except ValidationError as e:
        logger.error("form serialization produced an invalid envelope: %s", e)
        raise FormSerializationError(
            "Failed to serialize form: Invalid form structure", _issues_from(e)
        ) from e

    return envelope


def _is_envelope(data: dict) -> bool:
    return "formData" in data or "form_data" in data


def _camel_keys(item: dict) -> dict:
    """Rename snake_case keys to their camelCase alias; camelCase wins on conflict."""
    out = {_SNAKE_PART.sub(lambda m: m.group(1).upper(), k): v for k, v in item.items() if "_" in k}
    out.update({k: v for k, v in item.items() if "_" not in k})
    return out


def _unwrap(data: dict) -> dict:
    """
    formData of an envelope (or the bare formData itself), with every key in
    camelCase so both spellings the models accept are read the same way.
    """
    data = _camel_keys(data)
    inner = data.get("formData")
    form_data = _camel_keys(inner) if isinstance(inner, dict) else data
    for key in ("fields", "rows"):
        items = form_data.get(key)
        if isinstance(items, list):
            form_data[key] = [_camel_keys(x) if isinstance(x, dict) else x for x in items]
    return form_data


def _duplicate_row_ids(rows: list) -> list[str]:
    seen: set[str] = set()
    dupes: list[str] = []
    for r in rows:
        rid = r.get("id") if isinstance(r, dict) else None
        if not isinstance(rid, str):
            continue
        if rid in seen and rid not in dupes:
            dupes.append(rid)
        seen.add(rid)
    return dupes


def _validate_structure(data: dict) -> None:
    if _is_envelope(data):
        SerializableForm.model_validate(data)
    else:
        BareFormData.model_validate(data)


def _rewrite_ids(fields: list[dict], rows: list[dict]) -> tuple[list[dict], list[dict]]:
    old_to_new: dict[str, str] = {}
    new_rows: list[dict] = []
    for row in rows:
        nid = new_id()
        if row.get("id") is not None:
            old_to_new[row["id"]] = nid
        new_rows.append({"id": nid, "order": row.get("order") or 0, "columns": row.get("columns") or 1})

    new_fields: list[dict] = []
    for f in fields:
        new_row_id = old_to_new.get(f["rowId"]) if f.get("rowId") else None
        new_fields.append(
            {
                "id": new_id(),
                "type": f.get("type"),
                "label": f.get("label") or "",
                "placeholder": f.get("placeholder"),
                "required": bool(f.get("required") or False),
                "options": f.get("options"),
                "rowId": new_row_id,
                # a field that lost its row is no longer placed anywhere
                "columnIndex": f.get("columnIndex") if new_row_id else None,
                "width": f.get("width") or 1,
            }
        )
    return new_fields, new_rows


def _fill_defaults(fields: list[dict], rows: list[dict]) -> tuple[list[dict], list[dict]]:
    new_rows = [
        {"id": r.get("id") or new_id(), "order": r.get("order") or 0, "columns": r.get("columns") or 1}
        for r in rows
    ]
    row_ids = {r["id"] for r in new_rows}

    new_fields: list[dict] = []
    for f in fields:
        row_id = f.get("rowId")
        attached = row_id in row_ids
        new_fields.append(
            {
                "id": f.get("id") or new_id(),
                "type": f.get("type"),
                "label": f.get("label") or "",
                "placeholder": f.get("placeholder"),
                "required": bool(f.get("required") or False),
                "options": f.get("options"),
                "rowId": row_id if attached else None,
                "columnIndex": f.get("columnIndex") if attached else None,
                "width": f.get("width") or 1,
            }
        )
    return new_fields, new_rows


def deserialize_form(
    data: Any,
    *,
    replace_ids: bool = True,
    validate_structure: bool = True,
    preserve_theme: bool = True,
) -> ImportForm:
    """
    Turn an exported document (envelope or bare formData) into an ImportForm.

    replace_ids gives every row and field a fresh id and rewrites field row
    references through the old->new row map. Without it, missing attributes
    are defaulted instead. Fields whose row cannot be resolved end up
    unattached (rowId/columnIndex None).
    """
    if not isinstance(data, dict):
        raise FormImportError("Failed to import form: Invalid JSON structure", ["Expected a JSON object"])

    if validate_structure:
        try:
            _validate_structure(data)
        except ValidationError as e:
            logger.info("import rejected by structural validation (%d errors)", e.error_count())
            raise FormImportError("Failed to import form: Invalid form structure", _issues_from(e)) from e

    form_data = _unwrap(data)
    raw_fields = form_data.get("fields")
    raw_rows = form_data.get("rows")
    if not isinstance(raw_fields, list) or not isinstance(raw_rows, list):
        raise FormImportError(
            "Failed to import form: Invalid JSON structure",
            ["Form fields and rows must be lists"],
        )
    if not all(isinstance(x, dict) for x in raw_fields + raw_rows):
        raise FormImportError(
            "Failed to import form: Invalid JSON structure",
            ["Every field and row must be an object"],
        )
    duplicates = _duplicate_row_ids(raw_rows)
    if duplicates:
        raise FormImportError(
            "Failed to import form: Invalid form structure",
            [f"Duplicate row id: {rid}" for rid in duplicates],
        )

    if replace_ids:
        fields, rows = _rewrite_ids(raw_fields, raw_rows)
    else:
        fields, rows = _fill_defaults(raw_fields, raw_rows)

    theme_color = form_data.get("themeColor") if preserve_theme else None

    candidate = {
        "title": form_data.get("title") or DEFAULT_IMPORT_TITLE,
        "description": form_data.get("description") or None,
        "fields": fields,
        "rows": rows,
        "themeColor": theme_color or DEFAULT_THEME_COLOR,
    }

    try:
        result = ImportForm.model_validate(candidate)
    except ValidationError as e:
        raise FormImportError("Failed to import form: Invalid form data", _issues_from(e)) from e

    logger.info(
        "imported form title=%r fields=%d rows=%d replace_ids=%s",
        result.title, len(result.fields), len(result.rows), replace_ids,
    )
    return result


def validate_form_compatibility(data: Any) -> CompatibilityReport:
    """
    Dry-run check before import. A missing title is reported but does not by
    itself block the import; any other issue does.
    """
    if not isinstance(data, dict):
        return CompatibilityReport(
            is_valid=False,
            version="unknown",
            issues=["Invalid form format or structure"],
            can_import=False,
        )

    version = str(data.get("version") or "unknown")
    form_data = _unwrap(data)

    issues: list[str] = []
    blocking = False

    if not form_data.get("title"):
        issues.append("Form title is missing")

    fields = form_data.get("fields")
    rows = form_data.get("rows")

    if not isinstance(fields, list):
        issues.append("Form fields are missing or invalid")
        blocking = True
    else:
        for index, f in enumerate(fields, start=1):
            if not isinstance(f, dict) or not f.get("type") or not f.get("id"):
                issues.append(f"Field {index} is missing required properties")
                blocking = True

    if not isinstance(rows, list):
        issues.append("Form rows are missing or invalid")
        blocking = True
    else:
        for index, r in enumerate(rows, start=1):
            order = r.get("order") if isinstance(r, dict) else None
            if not isinstance(r, dict) or not r.get("id") or isinstance(order, bool) or not isinstance(order, (int, float)):
                issues.append(f"Row {index} is missing required properties")
                blocking = True
        for rid in _duplicate_row_ids(rows):
            issues.append(f"Duplicate row id: {rid}")
            blocking = True

    if not blocking:
        try:
            _validate_structure(data)
        except ValidationError as e:
            issues.append("Invalid form format or structure")
            issues.extend(_issues_from(e))
            blocking = True

    return CompatibilityReport(
        is_valid=not issues,
        version=version,
        issues=issues,
        can_import=not blocking,
    )


# ---- file adapters ----


def export_filename(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]", "-", (title or "").lower())
    return f"{slug}-form.json"


def dump_form_json(envelope: dict[str, Any], *, minify: bool = False) -> str:
    if minify:
        return json.dumps(envelope, separators=(",", ":"))
    return json.dumps(envelope, indent=2)


def write_form_json(
    directory: str | Path,
    title: str,
    description: str | None,
    fields: Iterable[FormField | dict],
    rows: Iterable[FormRow | dict],
    theme_color: str,
    *,
    minify: bool = False,
) -> Path:
    envelope = serialize_form(title, description, fields, rows, theme_color)
    path = Path(directory) / export_filename(title)
    path.write_text(dump_form_json(envelope, minify=minify), encoding="utf-8")
    logger.info("form exported to %s", path)
    return path


def is_json_file(filename: str, content_type: str | None = None) -> bool:
    # Pickers often tag JSON as text/plain or nothing at all; the extension wins.
    if filename.lower().endswith(".json"):
        return True
    return (content_type or "").split(";")[0].strip().lower() in _JSON_CONTENT_TYPES


def parse_json_bytes(raw: bytes | str) -> Any:
    try:
        text = raw.decode("utf-8-sig") if isinstance(raw, bytes) else raw
        return json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise FormFileError("Invalid JSON file format", [str(e)]) from e


def read_json_file(path: str | Path, content_type: str | None = None) -> Any:
    p = Path(path)
    if not is_json_file(p.name, content_type):
        raise FormFileError("Please select a valid JSON file", [f"Unsupported file: {p.name}"])
    try:
        raw = p.read_bytes()
    except OSError as e:
        raise FormFileError("Failed to read file", [str(e)]) from e
    return parse_json_bytes(raw)

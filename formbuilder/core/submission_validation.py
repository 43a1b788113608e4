from __future__ import annotations

import re
from typing import Any

from fastapi import HTTPException, status

from formbuilder.schemas.layout import FieldType, FormField

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def _validate_one(f: FormField, value: Any) -> dict | None:
    """
    Returns an error dict or None.
    Required check first; type checks only run on non-empty values.
    """
    label = f.label or f.type

    if _is_empty(value):
        if f.required:
            return {"field": f.id, "code": "required", "message": f"{label} is required"}
        return None

    if f.type == FieldType.EMAIL.value:
        if not isinstance(value, str) or not EMAIL_RE.match(value.strip()):
            return {"field": f.id, "code": "email", "message": "Please enter a valid email address"}

    elif f.type == FieldType.NUMBER.value:
        if isinstance(value, bool):
            return {"field": f.id, "code": "number", "message": "Please enter a valid number"}
        try:
            float(value)
        except (TypeError, ValueError):
            return {"field": f.id, "code": "number", "message": "Please enter a valid number"}

    elif f.type == FieldType.CHECKBOX.value:
        if not isinstance(value, list):
            return {"field": f.id, "code": "type", "message": "Expected a list of selected options"}

    return None


def validate_responses(fields: list[FormField], responses: dict[str, Any]) -> list[dict]:
    """
    Check a submission against the form's fields.
    Keys that are not fields of the form are ignored.
    """
    errors: list[dict] = []
    for f in fields:
        err = _validate_one(f, responses.get(f.id))
        if err:
            errors.append(err)
    return errors


def error_messages(errors: list[dict]) -> dict[str, str]:
    return {e["field"]: e["message"] for e in errors}


def validate_submission_or_400(fields: list[FormField], responses: dict[str, Any]) -> None:
    errors = validate_responses(fields, responses)
    if errors:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Submission validation failed", "errors": errors},
        )

from __future__ import annotations

import uuid
from typing import Any, Iterable

from formbuilder.schemas.layout import (
    CHOICE_FIELD_TYPES,
    FIELD_TYPE_VALUES,
    MAX_WIDTH,
    MIN_WIDTH,
    FieldType,
    FormField,
    FormRow,
)

DEFAULT_CHOICE_OPTIONS = ["Option 1", "Option 2", "Option 3"]


def new_id() -> str:
    return uuid.uuid4().hex


def is_choice_type(field_type: str) -> bool:
    return field_type in {t.value for t in CHOICE_FIELD_TYPES}


def create_row(order: int, columns: int = 1) -> FormRow:
    return FormRow(id=new_id(), order=order, columns=columns)


def create_field(
    field_type: str | FieldType,
    row_id: str | None,
    column_index: int | None,
    width: int = 1,
) -> FormField:
    """
    New palette field with a fresh id.
    Choice types are seeded with three generic options; others get none.
    """
    ftype = field_type.value if isinstance(field_type, FieldType) else str(field_type)
    return FormField(
        id=new_id(),
        type=ftype,
        label=f"{ftype[:1].upper()}{ftype[1:]} Field",
        placeholder=f"Enter {ftype}",
        required=False,
        options=list(DEFAULT_CHOICE_OPTIONS) if is_choice_type(ftype) else None,
        row_id=row_id,
        column_index=column_index,
        width=width,
    )


def validate_field(field: FormField, rows: Iterable[FormRow]) -> list[str]:
    """
    Returns a list of problems (empty list == ok).
    Fields without a row are unattached and only checked for type/width.
    """
    errors: list[str] = []

    if field.type not in FIELD_TYPE_VALUES:
        errors.append(f"Unknown field type: {field.type}")

    if not (MIN_WIDTH <= field.width <= MAX_WIDTH):
        errors.append(f"Width must be between {MIN_WIDTH} and {MAX_WIDTH}")

    if field.row_id is not None:
        row = next((r for r in rows if r.id == field.row_id), None)
        if row is None:
            errors.append(f"Row not found: {field.row_id}")
        elif field.column_index is None or not (0 <= field.column_index < row.columns):
            errors.append(
                f"Column index {field.column_index} out of range for row with {row.columns} columns"
            )

    return errors


def default_value(field: FormField) -> Any:
    if field.type == FieldType.CHECKBOX.value:
        return []
    return ""

from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from formbuilder.schemas.layout import (
    MAX_COLUMNS,
    MIN_COLUMNS,
    CamelModel,
    FieldType,
    FormField,
    FormRow,
)


class FormCreate(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    fields: list[FormField] = Field(default_factory=list)
    rows: list[FormRow] = Field(default_factory=list)
    theme_color: str = "#6366F1"
    is_published: bool = False


class FormUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    fields: list[FormField] | None = None
    rows: list[FormRow] | None = None
    theme_color: str | None = None
    is_published: bool | None = None


class FormOut(CamelModel):
    id: str
    title: str
    description: str | None
    fields: list[FormField]
    rows: list[FormRow]
    theme_color: str
    is_published: bool
    share_id: str
    share_url: str
    created_at: datetime
    updated_at: datetime


class FormSummaryOut(CamelModel):
    id: str
    title: str
    description: str | None
    is_published: bool
    share_id: str
    field_count: int
    row_count: int
    created_at: datetime
    updated_at: datetime


class FieldCreate(CamelModel):
    type: FieldType
    row_id: str | None = None
    column_index: int | None = Field(default=None, ge=0)


class FieldUpdate(CamelModel):
    # range problems are clamped by the layout engine, not rejected
    type: FieldType | None = None
    label: str | None = None
    placeholder: str | None = None
    required: bool | None = None
    options: list[str] | None = None
    row_id: str | None = None
    column_index: int | None = None
    width: int | None = None


class RowCreate(CamelModel):
    columns: int = Field(default=1, ge=MIN_COLUMNS, le=MAX_COLUMNS)


class RowUpdate(CamelModel):
    columns: int | None = Field(default=None, ge=MIN_COLUMNS, le=MAX_COLUMNS)
    order: int | None = None


class RowMove(CamelModel):
    direction: Literal["up", "down"]


class DropRequest(CamelModel):
    row_id: str
    column_index: int
    field_type: str | None = None
    field_id: str | None = None


class LayoutChangeOut(CamelModel):
    form: FormOut
    field: FormField | None = None
    row: FormRow | None = None


class DropOut(CamelModel):
    action: Literal["added", "moved", "noop"]
    reason: str | None = None
    field: FormField | None = None
    form: FormOut


class ShareOut(CamelModel):
    share_id: str
    share_url: str


class ResponseCreate(CamelModel):
    responses: dict[str, Any]


class ResponseOut(CamelModel):
    id: str
    form_id: str
    responses: dict[str, Any]
    submitted_at: datetime
    ip_address: str | None
    user_agent: str | None

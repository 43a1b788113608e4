from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FieldType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    NUMBER = "number"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    PHONE = "phone"
    DATE = "date"
    TIME = "time"
    RATING = "rating"
    FILE = "file"
    ADDRESS = "address"
    RANGE = "range"
    TOGGLE = "toggle"


FIELD_TYPE_VALUES = frozenset(t.value for t in FieldType)

CHOICE_FIELD_TYPES = frozenset({FieldType.SELECT, FieldType.RADIO, FieldType.CHECKBOX})

# Counted by the export complexity classifier
ADVANCED_FIELD_TYPES = frozenset(
    {
        FieldType.SELECT,
        FieldType.RADIO,
        FieldType.CHECKBOX,
        FieldType.RATING,
        FieldType.FILE,
        FieldType.ADDRESS,
        FieldType.RANGE,
        FieldType.TOGGLE,
    }
)

MIN_COLUMNS = 1
MAX_COLUMNS = 4
MIN_WIDTH = 1
MAX_WIDTH = 4

Complexity = Literal["simple", "moderate", "complex"]


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python; both accepted on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class FormField(CamelModel):
    id: str
    # Plain string so unknown types survive import; renderers degrade them to text.
    type: str
    label: str = ""
    placeholder: str | None = None
    required: bool = False
    options: list[str] | None = None
    row_id: str | None = None
    column_index: int | None = Field(default=None, ge=0)
    width: int = Field(default=1, ge=MIN_WIDTH, le=MAX_WIDTH)


class FormRow(CamelModel):
    id: str
    order: int
    columns: int = Field(default=1, ge=MIN_COLUMNS, le=MAX_COLUMNS)


class FormMetadata(CamelModel):
    field_count: int = Field(ge=0)
    row_count: int = Field(ge=0)
    complexity: Complexity


class SerializableFormData(CamelModel):
    title: str = ""
    description: str | None = None
    fields: list[FormField]
    rows: list[FormRow]
    theme_color: str
    metadata: FormMetadata


class SerializableForm(CamelModel):
    version: str
    exported_at: datetime
    form_data: SerializableFormData


class BareFormData(CamelModel):
    """formData without the envelope, as older exports wrote it."""
    title: str = ""
    description: str | None = None
    fields: list[FormField]
    rows: list[FormRow]
    theme_color: str | None = None
    metadata: FormMetadata | None = None


class ImportForm(CamelModel):
    title: str = Field(min_length=1)
    description: str | None = None
    fields: list[FormField]
    rows: list[FormRow]
    theme_color: str


class CompatibilityReport(CamelModel):
    is_valid: bool
    version: str
    issues: list[str]
    can_import: bool

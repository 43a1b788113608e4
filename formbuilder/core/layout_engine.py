from __future__ import annotations

import logging
from dataclasses import dataclass, field as dc_field
from typing import Any, Iterable, Literal

from formbuilder.core.layout_model import DEFAULT_CHOICE_OPTIONS, create_field, create_row, is_choice_type
from formbuilder.schemas.layout import (
    FIELD_TYPE_VALUES,
    MAX_COLUMNS,
    MAX_WIDTH,
    MIN_COLUMNS,
    MIN_WIDTH,
    FieldType,
    FormField,
    FormRow,
)

logger = logging.getLogger("formbuilder.layout")

Direction = Literal["up", "down"]

_FIELD_ATTRS = {"type", "label", "placeholder", "required", "options", "row_id", "column_index", "width"}
_ROW_ATTRS = {"order", "columns"}
# a null for these means "leave unchanged"
_REQUIRED_FIELD_ATTRS = {"type", "label", "required", "width"}


def _clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))


def _normalize_partial(partial: dict[str, Any], allowed: set[str]) -> dict[str, Any]:
    """Accept both camelCase and snake_case keys; drop anything unknown (incl. id)."""
    out: dict[str, Any] = {}
    for key, value in partial.items():
        snake = "".join(f"_{c.lower()}" if c.isupper() else c for c in key)
        if snake in allowed:
            out[snake] = value
    return out


class FormLayout:
    """
    Mutable (fields, rows) aggregate edited by the builder.

    Operations never raise on bad input: targets that do not exist are
    ignored and out-of-range numbers are clamped, so every field with a
    row_id always points at an existing row with columns > column_index.
    """

    def __init__(self, fields: Iterable[FormField] = (), rows: Iterable[FormRow] = ()):
        self.fields: list[FormField] = list(fields)
        self.rows: list[FormRow] = list(rows)

    @classmethod
    def new(cls) -> "FormLayout":
        return cls(fields=[], rows=[create_row(order=0, columns=1)])

    @classmethod
    def from_raw(cls, fields: Iterable[dict], rows: Iterable[dict]) -> "FormLayout":
        layout = cls(
            fields=[FormField.model_validate(f) for f in fields],
            rows=[FormRow.model_validate(r) for r in rows],
        )
        layout.normalize()
        return layout

    def to_raw(self) -> tuple[list[dict], list[dict]]:
        return (
            [f.to_json_dict() for f in self.fields],
            [r.to_json_dict() for r in self.rows],
        )

    # ---- lookups ----

    def get_field(self, field_id: str) -> FormField | None:
        return next((f for f in self.fields if f.id == field_id), None)

    def get_row(self, row_id: str | None) -> FormRow | None:
        if row_id is None:
            return None
        return next((r for r in self.rows if r.id == row_id), None)

    def sorted_rows(self) -> list[FormRow]:
        # sorted() is stable, so rows sharing an order keep list order
        return sorted(self.rows, key=lambda r: r.order)

    def fields_in(self, row_id: str, column_index: int) -> list[FormField]:
        return [f for f in self.fields if f.row_id == row_id and f.column_index == column_index]

    # ---- fields ----

    def add_field(
        self,
        field_type: str,
        row_id: str | None = None,
        column_index: int | None = None,
    ) -> FormField:
        row = self.get_row(row_id)
        if row is None:
            ordered = self.sorted_rows()
            if ordered:
                row = ordered[0]
            else:
                row = self.add_row()
            column_index = 0

        col = _clamp(column_index or 0, 0, row.columns - 1)
        f = create_field(field_type, row_id=row.id, column_index=col)
        self.fields.append(f)
        logger.debug("add_field type=%s row=%s col=%s id=%s", f.type, row.id, col, f.id)
        return f

    def update_field(self, field_id: str, partial: dict[str, Any]) -> FormField | None:
        """
        Merge attribute changes. A row_id/column_index change is a move:
        siblings are not reflowed, fields sharing a slot stack in list order.
        """
        current = self.get_field(field_id)
        if current is None:
            return None

        changes = {
            k: v
            for k, v in _normalize_partial(partial, _FIELD_ATTRS).items()
            if not (v is None and k in _REQUIRED_FIELD_ATTRS)
        }
        if isinstance(changes.get("type"), FieldType):
            changes["type"] = changes["type"].value

        if "row_id" in changes or "column_index" in changes:
            target_row_id = changes.get("row_id", current.row_id)
            target_row = self.get_row(target_row_id)
            if target_row is None:
                # unknown destination: keep the field where it is
                changes.pop("row_id", None)
                changes.pop("column_index", None)
                target_row = self.get_row(current.row_id)
            if target_row is not None:
                col = changes.get("column_index", current.column_index)
                changes["column_index"] = _clamp(col if col is not None else 0, 0, target_row.columns - 1)

        if "width" in changes:
            changes["width"] = _clamp(int(changes["width"]), MIN_WIDTH, MAX_WIDTH)

        new_type = changes.get("type", current.type)
        options = changes.get("options", current.options)
        if is_choice_type(new_type) and not options:
            changes["options"] = list(DEFAULT_CHOICE_OPTIONS)

        updated = current.model_copy(update=changes)
        idx = self.fields.index(current)
        self.fields[idx] = updated
        return updated

    def remove_field(self, field_id: str) -> bool:
        before = len(self.fields)
        self.fields = [f for f in self.fields if f.id != field_id]
        return len(self.fields) != before

    # ---- rows ----

    def add_row(self, columns: int = 1) -> FormRow:
        """
        Append a row after the last one. The first row of a flat layout adopts
        the flat fields into its first column so none of them drop out of view.
        """
        was_flat = not self.rows
        order = max((r.order for r in self.rows), default=-1) + 1
        row = create_row(order=order, columns=_clamp(columns, MIN_COLUMNS, MAX_COLUMNS))
        self.rows.append(row)
        if was_flat:
            self.fields = [f.model_copy(update={"row_id": row.id, "column_index": 0}) for f in self.fields]
        logger.debug("add_row id=%s order=%s columns=%s", row.id, row.order, row.columns)
        return row

    def update_row(self, row_id: str, partial: dict[str, Any]) -> FormRow | None:
        current = self.get_row(row_id)
        if current is None:
            return None

        changes = _normalize_partial(partial, _ROW_ATTRS)
        if "columns" in changes:
            changes["columns"] = _clamp(int(changes["columns"]), MIN_COLUMNS, MAX_COLUMNS)

        updated = current.model_copy(update=changes)
        self.rows[self.rows.index(current)] = updated

        if updated.columns < current.columns:
            self._clamp_row_fields(updated)
        return updated

    def remove_row(self, row_id: str) -> bool:
        """Delete the row and every field placed in it."""
        if self.get_row(row_id) is None:
            return False
        self.rows = [r for r in self.rows if r.id != row_id]
        self.fields = [f for f in self.fields if f.row_id != row_id]
        return True

    def move_row(self, row_id: str, direction: Direction) -> bool:
        ordered = self.sorted_rows()
        idx = next((i for i, r in enumerate(ordered) if r.id == row_id), None)
        if idx is None:
            return False

        other = idx - 1 if direction == "up" else idx + 1
        if other < 0 or other >= len(ordered):
            return False

        a, b = ordered[idx], ordered[other]
        a_order, b_order = a.order, b.order
        if a_order == b_order:
            # equal orders would make the swap invisible; spread them first
            for pos, r in enumerate(ordered):
                self._set_row_order(r.id, pos)
            a_order, b_order = idx, other

        self._set_row_order(a.id, b_order)
        self._set_row_order(b.id, a_order)
        return True

    # ---- invariants ----

    def normalize(self) -> None:
        """Bring loaded data back in line with the column invariant."""
        rows = [
            r.model_copy(update={"columns": _clamp(r.columns, MIN_COLUMNS, MAX_COLUMNS)})
            for r in self.rows
        ]
        self.rows = rows
        by_id = {r.id: r for r in rows}

        fixed: list[FormField] = []
        for f in self.fields:
            row = by_id.get(f.row_id) if f.row_id is not None else None
            if f.row_id is not None and row is None:
                f = f.model_copy(update={"row_id": None, "column_index": None})
            elif row is not None:
                col = f.column_index if f.column_index is not None else 0
                f = f.model_copy(update={"column_index": _clamp(col, 0, row.columns - 1)})
            fixed.append(f)
        self.fields = fixed

    def _clamp_row_fields(self, row: FormRow) -> None:
        last = row.columns - 1
        self.fields = [
            f.model_copy(update={"column_index": last})
            if f.row_id == row.id and f.column_index is not None and f.column_index > last
            else f
            for f in self.fields
        ]

    def _set_row_order(self, row_id: str, order: int) -> None:
        for i, r in enumerate(self.rows):
            if r.id == row_id:
                self.rows[i] = r.model_copy(update={"order": order})


# ---- drag and drop ----


@dataclass
class DropPayload:
    """
    What the drag carried: a palette type, an existing field id, or both.
    ``plain`` holds an untyped text/plain value, which may be either.
    """
    field_type: str | None = None
    field_id: str | None = None
    plain: str | None = None

    @classmethod
    def from_transfer(cls, data: dict[str, str]) -> "DropPayload":
        """
        Build from drag data keyed by MIME type. Palette items and canvas
        fields both fall back to the text/plain slot, so that value is kept
        aside and resolved against the layout at drop time.
        """
        field_type = data.get("application/x-field-type") or None
        field_id = data.get("application/x-field-id") or None
        plain = None
        if field_id is None and field_type is None:
            plain = data.get("text/plain") or None
        return cls(field_type=field_type, field_id=field_id, plain=plain)

    def resolve(self, layout: "FormLayout") -> tuple[str | None, str | None]:
        """(field_type, field_id) with the text/plain value settled."""
        if self.field_type is not None or self.field_id is not None or self.plain is None:
            return self.field_type, self.field_id
        # an existing field id wins over a type name
        if layout.get_field(self.plain) is not None:
            return None, self.plain
        if self.plain in FIELD_TYPE_VALUES:
            return self.plain, None
        return None, self.plain


@dataclass
class DragSession:
    """Transient interaction state for one drag; only a drop commits."""
    dragged_field_id: str | None = None
    hover_row_id: str | None = None
    hover_column: int | None = None

    def start(self, field_id: str | None = None) -> None:
        self.dragged_field_id = field_id
        self.hover_row_id = None
        self.hover_column = None

    def drag_over(self, row_id: str, column_index: int) -> None:
        self.hover_row_id = row_id
        self.hover_column = column_index

    def drag_leave(self) -> None:
        self.hover_row_id = None
        self.hover_column = None

    def end(self) -> None:
        self.dragged_field_id = None
        self.drag_leave()

    def is_hovering(self, row_id: str, column_index: int) -> bool:
        return self.hover_row_id == row_id and self.hover_column == column_index


@dataclass
class DropResult:
    action: Literal["added", "moved", "noop"]
    field: FormField | None = None
    reason: str | None = None
    details: dict[str, Any] = dc_field(default_factory=dict)


def resolve_drop(
    layout: FormLayout,
    payload: DropPayload,
    row_id: str,
    column_index: int,
    session: DragSession | None = None,
) -> DropResult:
    """
    Commit a drop on (row_id, column_index).

    An existing field id means relocation; a palette type alone means a new
    field. Exactly one of the two is applied. Anything unresolvable is a no-op
    and leaves the layout untouched.
    """
    field_type, field_id = payload.resolve(layout)
    if field_id is None and session is not None and field_type is None:
        field_id = session.dragged_field_id

    try:
        row = layout.get_row(row_id)
        if row is None:
            return DropResult(action="noop", reason="unknown_row")
        if column_index < 0 or column_index >= row.columns:
            return DropResult(action="noop", reason="invalid_column")

        if field_id is not None:
            current = layout.get_field(field_id)
            if current is None:
                return DropResult(action="noop", reason="unknown_field")
            if current.row_id == row_id and current.column_index == column_index:
                return DropResult(action="noop", field=current, reason="unchanged")
            moved = layout.update_field(field_id, {"row_id": row_id, "column_index": column_index})
            return DropResult(
                action="moved",
                field=moved,
                details={"from": [current.row_id, current.column_index], "to": [row_id, column_index]},
            )

        if field_type is not None:
            if field_type not in FIELD_TYPE_VALUES:
                return DropResult(action="noop", reason="unknown_field_type")
            added = layout.add_field(field_type, row_id, column_index)
            return DropResult(action="added", field=added)

        return DropResult(action="noop", reason="empty_payload")
    finally:
        if session is not None:
            session.end()
